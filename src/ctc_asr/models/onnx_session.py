"""ONNX Runtime session creation from a runtime plan."""

from __future__ import annotations

import logging

from ctc_asr.errors import BackendInitFailed
from ctc_asr.models.session import InferenceSession
from ctc_asr.runtime.plan import RuntimePlan

logger = logging.getLogger(__name__)


def _get_ort():
    import onnxruntime as ort
    return ort


def create_onnx_session(model_path: str, plan: RuntimePlan) -> InferenceSession:
    """Create an ``onnxruntime.InferenceSession`` configured by `plan`.

    Providers are registered in plan order; onnxruntime skips the ones its
    build does not ship and falls through to the next.

    Raises:
        BackendInitFailed: on any error from onnxruntime.
    """
    try:
        ort = _get_ort()
        so = ort.SessionOptions()
        so.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        so.intra_op_num_threads = plan.intra_op_threads
        so.inter_op_num_threads = plan.inter_op_threads
        so.execution_mode = (
            ort.ExecutionMode.ORT_PARALLEL
            if plan.parallel_execution
            else ort.ExecutionMode.ORT_SEQUENTIAL
        )
        names, provider_options = zip(*plan.ort_providers())
        session = ort.InferenceSession(
            str(model_path),
            sess_options=so,
            providers=list(names),
            provider_options=list(provider_options),
        )
    except Exception as exc:
        raise BackendInitFailed(
            f"Failed to initialize ONNX Runtime session: {model_path} ({exc})"
        ) from exc

    logger.debug("ONNX Runtime active providers: %s", session.get_providers())
    return session
