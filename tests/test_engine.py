"""Unit tests for the transcription engine over a fake inference session."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import numpy as np

from ctc_asr.errors import (
    BackendInitFailed,
    InferenceFailed,
    InvalidConfig,
    InvalidVocabulary,
    MissingAsset,
    NotLoaded,
    OutputNotFound,
    SchemaResolutionFailed,
    ShapeMismatch,
)
from ctc_asr.models.registry import VOCAB_FILENAME
from ctc_asr.runtime import RuntimeOptions

from fakes import FakeNode, SessionFactoryRecorder, fake_engine, write_model_dir

ONE_SECOND = np.zeros(16000, dtype=np.float32)


class TestTranscriptionEngine(unittest.TestCase):
    """Load, transcribe and failure handling."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.model_dir = write_model_dir(self.root / "model")
        self.factory = SessionFactoryRecorder()
        self.engine = fake_engine(self.factory)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_transcribe_before_load(self) -> None:
        with self.assertRaises(NotLoaded):
            self.engine.transcribe(ONE_SECOND)

    def test_transcribe_text_and_feed(self) -> None:
        """Features and int64 lengths are fed; logits decode to text."""
        self.engine.load(self.model_dir, RuntimeOptions())
        report = self.engine.transcribe(ONE_SECOND)

        self.assertEqual(report.text, "hello world")
        self.assertIn("mode=auto", report.provider_summary)
        (feed,) = self.factory.created[0].calls
        self.assertEqual(feed["features"].shape, (1, 64, 99))
        self.assertEqual(feed["feature_lengths"].dtype, np.int64)
        self.assertEqual(feed["feature_lengths"].tolist(), [99])

    def test_short_input_skips_backend(self) -> None:
        """Input shorter than one window returns empty text without running the model."""
        self.engine.load(self.model_dir, RuntimeOptions())
        report = self.engine.transcribe(np.zeros(100, dtype=np.float32))

        self.assertEqual(report.text, "")
        self.assertEqual(report.timings.ort_run_ms, 0)
        self.assertEqual(report.timings.decode_ms, 0)
        self.assertEqual(self.factory.created[0].calls, [])

    def test_report_dict(self) -> None:
        self.engine.load(self.model_dir, RuntimeOptions.from_ids("fast", "cpu"))
        record = self.engine.transcribe(ONE_SECOND).to_dict()
        self.assertEqual(
            set(record),
            {"provider", "feature_extraction_ms", "ort_run_ms", "decode_ms", "total_ms"},
        )
        self.assertTrue(record["provider"].startswith("mode=cpu, profile=fast"))

    def test_plan_passed_to_factory(self) -> None:
        self.engine.load(self.model_dir, RuntimeOptions.from_ids("quality", "cpu"))
        plan = self.factory.plans[0]
        self.assertTrue(plan.parallel_execution)
        self.assertEqual(self.engine.plan, plan)

    def test_full_weights_accepted(self) -> None:
        model_dir = write_model_dir(self.root / "full", weights_filename="v3_e2e_ctc.onnx")
        self.engine.load(model_dir, RuntimeOptions())
        self.assertTrue(self.engine.is_loaded)

    def test_missing_weights(self) -> None:
        empty = self.root / "empty"
        empty.mkdir()
        with self.assertRaises(MissingAsset):
            self.engine.load(empty, RuntimeOptions())

    def test_missing_vocab(self) -> None:
        model_dir = write_model_dir(self.root / "novocab", vocab=None)
        with self.assertRaises(MissingAsset):
            self.engine.load(model_dir, RuntimeOptions())

    def test_bad_vocab(self) -> None:
        model_dir = write_model_dir(self.root / "badvocab", vocab="a 0\n")
        with self.assertRaises(InvalidVocabulary):
            self.engine.load(model_dir, RuntimeOptions())

    def test_bad_config(self) -> None:
        model_dir = write_model_dir(self.root / "badcfg", config="center: true\n")
        with self.assertRaises(InvalidConfig):
            self.engine.load(model_dir, RuntimeOptions())

    def test_failed_load_keeps_previous_model(self) -> None:
        self.engine.load(self.model_dir, RuntimeOptions())
        (self.model_dir / VOCAB_FILENAME).unlink()
        with self.assertRaises(MissingAsset):
            self.engine.load(self.model_dir, RuntimeOptions())
        self.assertEqual(self.engine.transcribe(ONE_SECOND).text, "hello world")

    def test_factory_error_wrapped(self) -> None:
        def broken(model_path, plan):
            raise RuntimeError("no such provider")

        engine = fake_engine(broken)
        with self.assertRaises(BackendInitFailed):
            engine.load(self.model_dir, RuntimeOptions())
        self.assertFalse(engine.is_loaded)

    def test_schema_failure(self) -> None:
        engine = fake_engine(SessionFactoryRecorder(inputs=[FakeNode("x", [1])]))
        with self.assertRaises(SchemaResolutionFailed):
            engine.load(self.model_dir, RuntimeOptions())

    def test_inference_error_keeps_engine(self) -> None:
        """Per-call failures leave the model loaded."""
        engine = fake_engine(SessionFactoryRecorder(error=RuntimeError("boom")))
        engine.load(self.model_dir, RuntimeOptions())
        with self.assertRaises(InferenceFailed):
            engine.transcribe(ONE_SECOND)
        self.assertTrue(engine.is_loaded)

    def test_output_not_found(self) -> None:
        engine = fake_engine(SessionFactoryRecorder(outputs_fn=lambda feed: []))
        engine.load(self.model_dir, RuntimeOptions())
        with self.assertRaises(OutputNotFound):
            engine.transcribe(ONE_SECOND)

    def test_rank_two_logits(self) -> None:
        engine = fake_engine(
            SessionFactoryRecorder(outputs_fn=lambda feed: [np.zeros((5, 4), dtype=np.float32)])
        )
        engine.load(self.model_dir, RuntimeOptions())
        with self.assertRaises(ShapeMismatch):
            engine.transcribe(ONE_SECOND)

    def test_unload(self) -> None:
        self.engine.load(self.model_dir, RuntimeOptions())
        self.engine.unload()
        self.engine.unload()
        self.assertFalse(self.engine.is_loaded)
        self.assertEqual(self.engine.provider_summary, "")
        with self.assertRaises(NotLoaded):
            self.engine.transcribe(ONE_SECOND)


if __name__ == "__main__":
    unittest.main(argv=[""], exit=False, verbosity=2)
