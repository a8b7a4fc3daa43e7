"""Execution-provider and thread-count selection per runtime options.

Pure policy: nothing here touches a model. The inference backend tries the
candidate providers in order and falls back on its own at session creation;
probe results only feed the diagnostic summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import import_module
from typing import Any, Collection, Dict, Optional, Tuple

from ctc_asr.runtime.options import AcceleratorMode, RuntimeOptions

XNNPACK_PROVIDER = "XnnpackExecutionProvider"
NNAPI_PROVIDER = "NnapiExecutionProvider"
CPU_PROVIDER = "CPUExecutionProvider"

XNNPACK_THREAD_COUNT = 4


@dataclass(frozen=True)
class ProviderSpec:
    """One candidate execution provider and its options."""

    name: str
    options: Dict[str, Any] = field(default_factory=dict)
    available: bool = False

    def as_ort(self) -> Tuple[str, Dict[str, str]]:
        """(name, options) pair in the form onnxruntime accepts."""
        return self.name, {key: _ort_value(value) for key, value in self.options.items()}


def _ort_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


@dataclass(frozen=True)
class RuntimePlan:
    """Resolved session configuration for one load."""

    options: RuntimeOptions
    providers: Tuple[ProviderSpec, ...]
    intra_op_threads: int
    inter_op_threads: int
    parallel_execution: bool
    summary: str

    @property
    def provider_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.providers)

    def ort_providers(self) -> list:
        return [p.as_ort() for p in self.providers]


def probe_available_providers() -> Tuple[str, ...]:
    """Provider names the installed onnxruntime build reports."""
    try:
        ort = import_module("onnxruntime")
    except ImportError:
        return ()
    return tuple(ort.get_available_providers())


def build_runtime_plan(
    options: RuntimeOptions,
    available_providers: Optional[Collection[str]] = None,
) -> RuntimePlan:
    """Select providers, threads and execution mode for `options`.

    Args:
        options: Speed profile / accelerator preference.
        available_providers: Provider names reported by the backend. If None,
            the installed onnxruntime is probed.

    Returns:
        RuntimePlan with providers in priority order.
    """
    if available_providers is None:
        available_providers = probe_available_providers()
    available = set(available_providers)
    # the CPU provider is always compiled in; an empty probe means "unknown"
    cpu_available = CPU_PROVIDER in available or not available
    profile = options.speed_profile

    if options.accelerator_mode is AcceleratorMode.CPU:
        intra, inter, parallel = profile.cpu_threads
        cpu = ProviderSpec(CPU_PROVIDER, {}, cpu_available)
        summary = (
            f"mode=cpu, profile={profile.value}, "
            f"requested=[CPU(available={cpu.available})]"
        )
        return RuntimePlan(
            options=options,
            providers=(cpu,),
            intra_op_threads=intra,
            inter_op_threads=inter,
            parallel_execution=parallel,
            summary=summary,
        )

    use_fp16 = profile.nnapi_use_fp16
    xnnpack = ProviderSpec(
        XNNPACK_PROVIDER,
        {"intra_op_num_threads": XNNPACK_THREAD_COUNT},
        XNNPACK_PROVIDER in available,
    )
    nnapi = ProviderSpec(
        NNAPI_PROVIDER,
        {"cpu_disabled": True, "use_fp16": use_fp16},
        NNAPI_PROVIDER in available,
    )
    cpu = ProviderSpec(CPU_PROVIDER, {}, cpu_available)
    summary = (
        f"mode=auto, profile={profile.value}, requested=["
        f"XNNPACK(available={xnnpack.available},threads={XNNPACK_THREAD_COUNT}), "
        f"NNAPI(available={nnapi.available},disable_cpu=True,fp16={use_fp16}), "
        f"CPU(available={cpu.available})]"
    )
    # accelerator providers manage their own parallelism
    return RuntimePlan(
        options=options,
        providers=(xnnpack, nnapi, cpu),
        intra_op_threads=1,
        inter_op_threads=1,
        parallel_execution=False,
        summary=summary,
    )
