"""Unit tests for environment settings and the command-line entry point."""

from __future__ import annotations

import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import numpy as np
import scipy.io.wavfile as wavfile

from ctc_asr import cli
from ctc_asr.settings import Settings, load_settings

from fakes import write_model_dir


class TestSettings(unittest.TestCase):
    """CTC_ASR_* environment variables."""

    def test_defaults(self) -> None:
        self.assertEqual(load_settings(env={}), Settings())

    def test_overrides(self) -> None:
        settings = load_settings(
            env={
                "CTC_ASR_MODELS_ROOT": "/opt/models",
                "CTC_ASR_MODEL_ID": "gigaam-v3-e2e-ctc",
                "CTC_ASR_SPEED_PROFILE": "fast",
                "CTC_ASR_ACCELERATOR": "cpu",
                "CTC_ASR_LOG_LEVEL": "debug",
            }
        )
        self.assertEqual(settings.models_root, Path("/opt/models"))
        self.assertEqual(settings.model_id, "gigaam-v3-e2e-ctc")
        self.assertEqual(settings.speed_profile, "fast")
        self.assertEqual(settings.accelerator, "cpu")
        self.assertEqual(settings.log_level, "DEBUG")

    def test_dotenv_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("CTC_ASR_SPEED_PROFILE=quality\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {}, clear=True):
                settings = load_settings(dotenv_path=path)
        self.assertEqual(settings.speed_profile, "quality")


class TestCli(unittest.TestCase):
    """Subcommands and exit codes."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), self.assertRaises(SystemExit) as ctx:
            cli.main(list(argv))
        return ctx.exception.code, out.getvalue()

    def test_validate_ok(self) -> None:
        write_model_dir(self.root / "gigaam-v3-e2e-ctc-int8")
        code, out = self._run("validate", "--models-root", str(self.root), "--model", "gigaam-v3-e2e-ctc-int8")
        self.assertEqual(code, 0)
        self.assertIn("ok: gigaam-v3-e2e-ctc-int8", out)

    def test_validate_missing(self) -> None:
        code, _ = self._run("validate", "--models-root", str(self.root), "--model", "gigaam-v3-e2e-ctc")
        self.assertEqual(code, 1)

    def test_unknown_model_exits_nonzero(self) -> None:
        code, _ = self._run("validate", "--models-root", str(self.root), "--model", "nope")
        self.assertEqual(code, 1)

    def test_features(self) -> None:
        path = self.root / "tone.wav"
        wavfile.write(str(path), 16000, np.zeros(16000, dtype=np.int16))
        code, out = self._run("features", "--file", str(path))
        self.assertEqual(code, 0)
        self.assertIn("99 frames x 64 Mel bins", out)

    def test_models_listing(self) -> None:
        code, out = self._run("models")
        self.assertEqual(code, 0)
        self.assertIn("gigaam-v3-e2e-ctc-int8", out)
        self.assertIn("gigaam-v3-e2e-ctc\t", out)


if __name__ == "__main__":
    unittest.main(argv=[""], exit=False, verbosity=2)
