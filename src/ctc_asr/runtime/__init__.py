"""Runtime options and execution-provider planning."""

from ctc_asr.runtime.options import AcceleratorMode, RuntimeOptions, SpeedProfile
from ctc_asr.runtime.plan import ProviderSpec, RuntimePlan, build_runtime_plan

__all__ = [
    "AcceleratorMode",
    "ProviderSpec",
    "RuntimeOptions",
    "RuntimePlan",
    "SpeedProfile",
    "build_runtime_plan",
]
