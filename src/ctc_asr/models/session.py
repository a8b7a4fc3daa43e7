"""Inference backend boundary.

The core only needs to list a session's inputs/outputs and run it with named
tensors. That is the subset of ``onnxruntime.InferenceSession`` described by
:class:`InferenceSession`; any object providing it can stand in for the
backend (TorchScript adapter, test fakes).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from ctc_asr.errors import SchemaResolutionFailed
from ctc_asr.runtime.plan import RuntimePlan

FEATURES_INPUT = "features"
FEATURE_LENGTHS_INPUT = "feature_lengths"
LOGITS_OUTPUTS = ("log_probs", "logits")


class TensorInfo(Protocol):
    """Name and (possibly symbolic) shape of a graph input or output."""

    name: str
    shape: Any


@runtime_checkable
class InferenceSession(Protocol):
    """Named-tensor run interface of an acoustic model graph."""

    def get_inputs(self) -> Sequence[TensorInfo]:
        ...

    def get_outputs(self) -> Sequence[TensorInfo]:
        ...

    def run(
        self,
        output_names: Optional[List[str]],
        input_feed: Dict[str, np.ndarray],
    ) -> List[np.ndarray]:
        ...


# (model_path, plan) -> session
SessionFactory = Callable[[str, RuntimePlan], InferenceSession]


@dataclass(frozen=True)
class TensorNames:
    """Resolved graph tensor names for the three roles the engine uses."""

    features: str
    feature_lengths: str
    logits: str


def _rank(info: TensorInfo) -> Optional[int]:
    shape = getattr(info, "shape", None)
    if shape is None:
        return None
    try:
        return len(shape)
    except TypeError:
        return None


def _find(infos: Sequence[TensorInfo], names: Sequence[str], rank: Optional[int]) -> Optional[str]:
    for info in infos:
        if info.name in names:
            return info.name
    if rank is not None:
        for info in infos:
            if _rank(info) == rank:
                return info.name
    return None


def resolve_tensor_names(session: InferenceSession) -> TensorNames:
    """Match session inputs/outputs to features, lengths and logits.

    Exact names win; otherwise the first rank-3 input is taken as features,
    the first rank-1 input as lengths and the first output as logits.

    Raises:
        SchemaResolutionFailed: if any role has no candidate.
    """
    inputs = list(session.get_inputs())
    outputs = list(session.get_outputs())

    features = _find(inputs, (FEATURES_INPUT,), 3)
    if features is None:
        raise SchemaResolutionFailed(
            f"Failed to determine features input among {[i.name for i in inputs]}"
        )
    lengths = _find(inputs, (FEATURE_LENGTHS_INPUT,), 1)
    if lengths is None:
        raise SchemaResolutionFailed(
            f"Failed to determine feature lengths input among {[i.name for i in inputs]}"
        )
    logits = _find(outputs, LOGITS_OUTPUTS, None)
    if logits is None:
        if not outputs:
            raise SchemaResolutionFailed("Failed to determine logits output: session has no outputs")
        logits = outputs[0].name
    return TensorNames(features=features, feature_lengths=lengths, logits=logits)
