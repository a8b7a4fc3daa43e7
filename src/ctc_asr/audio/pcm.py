"""PCM conversion and resampling helpers for host-supplied audio."""

from __future__ import annotations

import numpy as np

PCM16_SCALE = 32767.0


def pcm16_to_float32(pcm: np.ndarray) -> np.ndarray:
    """Convert int16 samples to float32 by dividing by the int16 maximum."""
    return np.asarray(pcm, dtype=np.int16).astype(np.float32) / np.float32(PCM16_SCALE)


def resample_linear(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linearly interpolate mono float samples from `source_rate` to `target_rate`.

    Empty input, non-positive rates or equal rates return the input unchanged.
    """
    audio = np.asarray(samples, dtype=np.float32)
    if audio.size == 0 or source_rate <= 0 or target_rate <= 0 or source_rate == target_rate:
        return audio

    ratio = target_rate / source_rate
    # half-up rounding, not Python's round-half-even
    output_len = max(1, int(np.floor(audio.size * ratio + 0.5)))
    positions = np.arange(output_len, dtype=np.float64) / ratio
    last = audio.size - 1
    left = np.clip(np.floor(positions).astype(np.int64), 0, last)
    right = np.minimum(left + 1, last)
    fraction = positions - left
    out = audio[left].astype(np.float64) * (1.0 - fraction) + audio[right].astype(np.float64) * fraction
    return out.astype(np.float32)
