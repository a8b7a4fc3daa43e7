"""Offline CTC speech recognition - log-Mel frontend, acoustic model session, greedy decoder, engine cache."""

from ctc_asr.errors import TranscriptionError
from ctc_asr.pipeline import EngineCache, SpeechService, TranscriptionEngine, TranscriptionReport
from ctc_asr.postprocess import normalize_spacing
from ctc_asr.runtime import RuntimeOptions

__all__ = [
    "EngineCache",
    "RuntimeOptions",
    "SpeechService",
    "TranscriptionEngine",
    "TranscriptionError",
    "TranscriptionReport",
    "normalize_spacing",
]
