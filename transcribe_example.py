"""Run the full transcription pipeline with the ONNX model or a dummy session.

Usage:
  python transcribe_example.py --dummy                         # Dummy model, synthetic audio
  python transcribe_example.py --models-root models --file test.wav
  python transcribe_example.py --models-root models --file test.wav --profile fast --accelerator cpu
"""

import argparse
import logging
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

import numpy as np

from ctc_asr.audio import load_wav
from ctc_asr.models.registry import CONFIG_FILENAME, DEFAULT_MODEL_ID, VOCAB_FILENAME
from ctc_asr.pipeline import EngineCache, SpeechService, TranscriptionEngine

VOCAB_DUMMY = "<unk> 0\n▁a 1\n▁b 2\nc 3\n<blk> 4\n"
BLANK_DUMMY = 4


class DummySession:
    """Dummy model: features (1, n_mels, T) -> random logits (1, ceil(T/4), V)."""

    def __init__(self, vocab_size=5, bias_blank=True):
        self.vocab_size = vocab_size
        self.bias_blank = bias_blank

    def get_inputs(self):
        return [_Node("features", [1, 64, "T"]), _Node("feature_lengths", [1])]

    def get_outputs(self):
        return [_Node("log_probs", [1, "T", self.vocab_size])]

    def run(self, output_names, input_feed):
        frames = int(input_feed["feature_lengths"][0])
        steps = (frames - 1) // 4 + 1
        logits = np.random.randn(1, steps, self.vocab_size).astype(np.float32)
        if self.bias_blank:
            logits[..., BLANK_DUMMY] += 1.0
        return [logits]


class _Node:
    def __init__(self, name, shape):
        self.name = name
        self.shape = shape


def make_dummy_models_root(root: Path) -> Path:
    model_dir = root / DEFAULT_MODEL_ID
    model_dir.mkdir(parents=True)
    (model_dir / "v3_e2e_ctc.int8.onnx").write_bytes(b"")
    (model_dir / VOCAB_FILENAME).write_text(VOCAB_DUMMY, encoding="utf-8")
    (model_dir / CONFIG_FILENAME).write_text("model_name: v3_e2e_ctc\n", encoding="utf-8")
    return root


def main() -> None:
    parser = argparse.ArgumentParser(description="Transcribe audio with the CTC pipeline")
    parser.add_argument("--dummy", action="store_true", help="Use a dummy session instead of ONNX Runtime")
    parser.add_argument("--models-root", type=Path, default=Path("models"))
    parser.add_argument("--model", default=DEFAULT_MODEL_ID)
    parser.add_argument("--file", type=Path, default=None, help="WAV file (default: 3 s of noise)")
    parser.add_argument("--profile", default="balanced")
    parser.add_argument("--accelerator", default="auto")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.file is not None:
        samples, sr = load_wav(args.file)
        pcm16 = np.clip(samples * 32767.0, -32768, 32767).astype(np.int16)
    else:
        sr = 16000
        pcm16 = (np.random.randn(3 * sr) * 1000).astype(np.int16)

    with tempfile.TemporaryDirectory() as tmp:
        if args.dummy:
            models_root = make_dummy_models_root(Path(tmp))
            cache = EngineCache(
                engine_factory=lambda: TranscriptionEngine(session_factory=lambda path, plan: DummySession())
            )
        else:
            models_root = args.models_root
            cache = EngineCache()

        service = SpeechService(models_root, cache=cache)
        print(service.set_runtime_options(args.profile, args.accelerator))
        if not service.is_model_valid(args.model):
            print(f"Model {args.model} not found under {models_root}", file=sys.stderr)
            sys.exit(1)

        print("Warmup:", service.warmup(args.model))
        text = service.transcribe_pcm16(args.model, pcm16, sr)
        print("Transcript:", repr(text))
        print("Profile:", service.last_profiling_summary())


if __name__ == "__main__":
    main()
