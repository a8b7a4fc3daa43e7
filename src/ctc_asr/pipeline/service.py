"""Host-facing speech service.

Wraps an EngineCache with what an embedding application needs: model-id
validation, runtime option switching, warmup, an int16 PCM entry point with
resampling, and a JSON profiling summary of the last call.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from ctc_asr.audio.config import TARGET_SAMPLE_RATE
from ctc_asr.audio.features import as_mono_samples
from ctc_asr.audio.pcm import pcm16_to_float32, resample_linear
from ctc_asr.errors import TranscriptionError
from ctc_asr.models.registry import resolve_model_directory, validate_model_directory
from ctc_asr.pipeline.cache import EngineCache
from ctc_asr.pipeline.engine import TranscriptionEngine, TranscriptionReport
from ctc_asr.runtime.options import RuntimeOptions

logger = logging.getLogger(__name__)

WARMUP_SECONDS = 0.5


@dataclass(frozen=True)
class ProfilingSummary:
    """Engine report plus the host-side pre-processing timings."""

    warmup: bool
    pcm_to_f32_ms: int
    resample_ms: int
    report: TranscriptionReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warmup": self.warmup,
            "pcm_to_f32_ms": self.pcm_to_f32_ms,
            "resample_ms": self.resample_ms,
            **self.report.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def _ms_since(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


class SpeechService:
    """Transcription entry points over a shared EngineCache.

    Interface:
      service = SpeechService("models")
      service.set_runtime_options("fast", "cpu")
      service.warmup("gigaam-v3-e2e-ctc-int8")
      text = service.transcribe_pcm16("gigaam-v3-e2e-ctc-int8", pcm16, 48_000)
      print(service.last_profiling_summary())
    """

    def __init__(
        self,
        models_root: Union[str, Path],
        cache: Optional[EngineCache] = None,
        runtime_options: Optional[RuntimeOptions] = None,
    ):
        self.models_root = Path(models_root)
        self.cache = cache or EngineCache()
        if runtime_options is not None:
            self.cache.set_runtime_options(runtime_options)

    @property
    def runtime_options(self) -> RuntimeOptions:
        return self.cache.runtime_options

    def model_directory(self, model_id: str) -> Path:
        return resolve_model_directory(self.models_root, model_id)

    def is_model_valid(self, model_id: str) -> bool:
        """True if the model id is known and all its files are present."""
        try:
            validate_model_directory(self.model_directory(model_id), model_id)
        except TranscriptionError as exc:
            logger.debug("Model %s not valid: %s", model_id, exc)
            return False
        return True

    def set_runtime_options(self, speed_profile: Optional[str], accelerator_mode: Optional[str]) -> str:
        """Switch speed/accelerator options.

        A change drops the cached engine; the last profiling summary survives.
        """
        options = self.cache.set_runtime_options(
            RuntimeOptions.from_ids(speed_profile, accelerator_mode)
        )
        return (
            f"ok: speed_profile={options.speed_profile.value}, "
            f"accelerator_mode={options.accelerator_mode.value}"
        )

    def _run(
        self,
        model_id: str,
        samples: np.ndarray,
        warmup: bool,
        pcm_to_f32_ms: int = 0,
        resample_ms: int = 0,
    ) -> TranscriptionReport:
        model_dir = self.model_directory(model_id)
        validate_model_directory(model_dir, model_id)

        def summarize(report: TranscriptionReport) -> str:
            return ProfilingSummary(
                warmup=warmup,
                pcm_to_f32_ms=pcm_to_f32_ms,
                resample_ms=resample_ms,
                report=report,
            ).to_json()

        def transcribe(engine: TranscriptionEngine) -> TranscriptionReport:
            return engine.transcribe(samples)

        # None: the options the cache holds when the lock is taken
        return self.cache.run_locked(model_dir, None, transcribe, summarize)

    def warmup(self, model_id: str) -> str:
        """Load the model if needed and run it once on silence."""
        silence = np.zeros(int(TARGET_SAMPLE_RATE * WARMUP_SECONDS), dtype=np.float32)
        report = self._run(model_id, silence, warmup=True)
        logger.info("Warmup done in %d ms (%s)", report.timings.total_ms, report.provider_summary)
        return "ok"

    def transcribe_samples(self, model_id: str, samples: np.ndarray) -> TranscriptionReport:
        """Transcribe mono float samples already at 16 kHz."""
        return self._run(model_id, as_mono_samples(samples), warmup=False)

    def transcribe_pcm16(self, model_id: str, pcm16: np.ndarray, sample_rate: int) -> str:
        """Transcribe int16 PCM at any positive rate; returns the text."""
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {sample_rate}")

        start = time.perf_counter()
        samples = pcm16_to_float32(pcm16)
        pcm_to_f32_ms = _ms_since(start)

        start = time.perf_counter()
        if sample_rate != TARGET_SAMPLE_RATE:
            samples = resample_linear(samples, sample_rate, TARGET_SAMPLE_RATE)
        resample_ms = _ms_since(start)

        report = self._run(
            model_id,
            samples,
            warmup=False,
            pcm_to_f32_ms=pcm_to_f32_ms,
            resample_ms=resample_ms,
        )
        return report.text

    def last_profiling_summary(self) -> str:
        """JSON summary of the last warmup/transcription, "{}" if none."""
        return self.cache.last_profile_summary or "{}"

    def unload(self) -> None:
        self.cache.unload()
