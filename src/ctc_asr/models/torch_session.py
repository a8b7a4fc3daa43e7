"""TorchScript backend exposing the same named-tensor session interface.

For a TorchScript export of the acoustic model whose ``forward(features,
feature_lengths)`` returns log-probs (optionally as the first element of a
tuple). Use with ``TranscriptionEngine(session_factory=create_torch_session)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from ctc_asr.errors import BackendInitFailed
from ctc_asr.models.session import FEATURE_LENGTHS_INPUT, FEATURES_INPUT
from ctc_asr.runtime.plan import RuntimePlan

logger = logging.getLogger(__name__)

LOG_PROBS_OUTPUT = "log_probs"


def _get_torch():
    import torch
    return torch


@dataclass(frozen=True)
class _Node:
    name: str
    shape: Tuple[Optional[int], ...]


class TorchScriptSession:
    """Run a TorchScript acoustic model on CPU with the plan's thread counts."""

    def __init__(self, module: object):
        self._module = module
        self._inputs = [
            _Node(FEATURES_INPUT, (1, None, None)),
            _Node(FEATURE_LENGTHS_INPUT, (1,)),
        ]
        self._outputs = [_Node(LOG_PROBS_OUTPUT, (1, None, None))]

    def get_inputs(self) -> List[_Node]:
        return list(self._inputs)

    def get_outputs(self) -> List[_Node]:
        return list(self._outputs)

    def run(
        self,
        output_names: Optional[List[str]],
        input_feed: Dict[str, np.ndarray],
    ) -> List[np.ndarray]:
        torch = _get_torch()
        with torch.no_grad():
            features = torch.from_numpy(np.ascontiguousarray(input_feed[FEATURES_INPUT]))
            lengths = torch.from_numpy(np.ascontiguousarray(input_feed[FEATURE_LENGTHS_INPUT]))
            out = self._module(features, lengths)
            if isinstance(out, (tuple, list)):
                out = out[0]
            log_probs = out.cpu().numpy().astype(np.float32)
        return [log_probs]


def create_torch_session(model_path: str, plan: RuntimePlan) -> TorchScriptSession:
    """Load a TorchScript module, applying the plan's intra/inter thread counts.

    Raises:
        BackendInitFailed: if torch is missing or the module fails to load.
    """
    try:
        torch = _get_torch()
        torch.set_num_threads(plan.intra_op_threads)
        try:
            torch.set_num_interop_threads(plan.inter_op_threads)
        except RuntimeError:
            # only settable once per process, before any parallel work
            logger.debug("torch inter-op threads already fixed; keeping current value")
        module = torch.jit.load(str(model_path), map_location="cpu")
        module.eval()
    except Exception as exc:
        raise BackendInitFailed(f"Failed to load TorchScript model: {model_path} ({exc})") from exc
    return TorchScriptSession(module)
