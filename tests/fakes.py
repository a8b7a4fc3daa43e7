"""Fake inference backend and on-disk model fixtures for tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ctc_asr.models.registry import CONFIG_FILENAME, VOCAB_FILENAME
from ctc_asr.pipeline.engine import TranscriptionEngine

VOCAB_TEXT = "<unk> 0\n▁hello 1\n▁world 2\n<blk> 3\n"
CONFIG_TEXT = """\
model_name: v3_e2e_ctc
sample_rate: 16000
features: 64
win_length: 320
hop_length: 160
n_fft: 320
center: false
mel_scale: htk
subsampling_factor: 4
"""
BLANK = 3
CPU_ONLY = ("CPUExecutionProvider",)


@dataclass
class FakeNode:
    name: str
    shape: Any = None


def hello_world_logits(steps: int) -> np.ndarray:
    """(1, steps, 4) logits decoding to ids [1, 2] when steps >= 2."""
    logits = np.full((1, steps, 4), -5.0, dtype=np.float32)
    logits[0, :, BLANK] = 0.0
    if steps > 0:
        logits[0, 0, 1] = 1.0
    if steps > 1:
        logits[0, 1, 2] = 1.0
    return logits


class FakeSession:
    """Implements the InferenceSession protocol over a canned logits function."""

    def __init__(
        self,
        inputs: Optional[Sequence[FakeNode]] = None,
        outputs: Optional[Sequence[FakeNode]] = None,
        outputs_fn=None,
        error: Optional[Exception] = None,
    ):
        self.inputs = list(inputs) if inputs is not None else [
            FakeNode("features", [1, 64, "T"]),
            FakeNode("feature_lengths", [1]),
        ]
        self.outputs = list(outputs) if outputs is not None else [FakeNode("log_probs", [1, "T", 4])]
        self.outputs_fn = outputs_fn or (lambda feed: [hello_world_logits(self.steps_for(feed))])
        self.error = error
        self.calls: List[Dict[str, np.ndarray]] = []

    @staticmethod
    def steps_for(feed: Dict[str, np.ndarray]) -> int:
        frames = int(feed["feature_lengths"][0])
        return (frames - 1) // 4 + 1

    def get_inputs(self):
        return self.inputs

    def get_outputs(self):
        return self.outputs

    def run(self, output_names, input_feed):
        self.calls.append(input_feed)
        if self.error is not None:
            raise self.error
        return self.outputs_fn(input_feed)


class SessionFactoryRecorder:
    """Session factory that hands out FakeSessions and remembers them."""

    def __init__(self, **session_kwargs):
        self.session_kwargs = session_kwargs
        self.created: List[FakeSession] = []
        self.plans = []

    def __call__(self, model_path, plan):
        session = FakeSession(**self.session_kwargs)
        self.created.append(session)
        self.plans.append(plan)
        return session


def fake_engine(factory: Optional[SessionFactoryRecorder] = None) -> TranscriptionEngine:
    return TranscriptionEngine(
        session_factory=factory or SessionFactoryRecorder(),
        available_providers=CPU_ONLY,
    )


def write_model_dir(
    directory: Path,
    weights_filename: str = "v3_e2e_ctc.int8.onnx",
    vocab: Optional[str] = VOCAB_TEXT,
    config: Optional[str] = CONFIG_TEXT,
) -> Path:
    """Create a model directory with placeholder weights."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / weights_filename).write_bytes(b"\x00")
    if vocab is not None:
        (directory / VOCAB_FILENAME).write_text(vocab, encoding="utf-8")
    if config is not None:
        (directory / CONFIG_FILENAME).write_text(config, encoding="utf-8")
    return directory
