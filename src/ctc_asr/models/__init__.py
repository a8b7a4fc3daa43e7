"""Inference backends and model asset layout."""

from ctc_asr.models.onnx_session import create_onnx_session
from ctc_asr.models.session import InferenceSession, TensorNames, resolve_tensor_names
from ctc_asr.models.torch_session import TorchScriptSession, create_torch_session

__all__ = [
    "InferenceSession",
    "TensorNames",
    "TorchScriptSession",
    "create_onnx_session",
    "create_torch_session",
    "resolve_tensor_names",
]
