"""Audio collection, PCM helpers and log-Mel feature extraction."""

from ctc_asr.audio.config import AcousticConfig
from ctc_asr.audio.collector import AudioCollector, load_wav
from ctc_asr.audio.features import SpectralFrontend
from ctc_asr.audio.pcm import pcm16_to_float32, resample_linear

__all__ = [
    "AcousticConfig",
    "AudioCollector",
    "SpectralFrontend",
    "load_wav",
    "pcm16_to_float32",
    "resample_linear",
]
