"""Transcription engine, engine cache and host-facing service."""

from ctc_asr.pipeline.cache import EngineCache, cache_key
from ctc_asr.pipeline.engine import StageTimings, TranscriptionEngine, TranscriptionReport
from ctc_asr.pipeline.service import ProfilingSummary, SpeechService

__all__ = [
    "EngineCache",
    "ProfilingSummary",
    "SpeechService",
    "StageTimings",
    "TranscriptionEngine",
    "TranscriptionReport",
    "cache_key",
]
