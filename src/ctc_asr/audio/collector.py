"""Audio collection at mono 16 kHz and WAV loading for transcription."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

try:
    import sounddevice as sd
except ImportError:
    sd = None  # type: ignore

from ctc_asr.audio.config import TARGET_SAMPLE_RATE


class AudioCollector:
    """Records audio as mono float32 at the model's sample rate."""

    def __init__(self, sample_rate: int = TARGET_SAMPLE_RATE):
        self.sample_rate = sample_rate

    def record_chunk(
        self,
        duration_sec: float,
        device: Optional[int] = None,
    ) -> np.ndarray:
        """Record a single chunk of audio.

        Args:
            duration_sec: Recording duration in seconds.
            device: Input device index (None = default).

        Returns:
            Mono float32 array, shape (n_samples,), normalized [-1, 1].
        """
        if sd is None:
            raise ImportError("sounddevice is required for recording. pip install sounddevice")

        samples = int(duration_sec * self.sample_rate)
        rec = sd.rec(
            samples,
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            device=device,
        )
        sd.wait()
        return rec.reshape(-1)


def load_wav(path: Union[str, Path]) -> Tuple[np.ndarray, int]:
    """Load a WAV file as mono float32.

    Integer PCM is scaled to [-1, 1]; multi-channel files are averaged down to
    mono.

    Returns:
        (samples, sample_rate)
    """
    import scipy.io.wavfile as wavfile

    sr, audio = wavfile.read(str(path))
    if audio.dtype == np.int16:
        audio = audio.astype(np.float32) / 32768.0
    elif audio.dtype == np.int32:
        audio = audio.astype(np.float32) / 2147483648.0
    elif audio.dtype == np.uint8:
        audio = (audio.astype(np.float32) - 128.0) / 128.0
    else:
        audio = audio.astype(np.float32)
    if audio.ndim > 1:
        audio = audio.mean(axis=1)
    return audio.astype(np.float32), int(sr)
