"""Feature extraction: Hann window, HTK log-Mel filterbank, uncentered STFT.

The acoustic model was calibrated against bfloat16-rounded window and filter
coefficients, so those are truncated bit-for-bit when the config asks for it.
"""

from __future__ import annotations

import functools
from typing import Tuple

import numpy as np
import scipy.fft

from ctc_asr.audio.config import AcousticConfig
from ctc_asr.errors import InvalidFilterGeometry, ShapeMismatch

MEL_MIN_CLAMP = 1e-9
MEL_MAX_CLAMP = 1e9

_BF16_MASK = np.uint32(0xFFFF_0000)


def quantize_to_bf16(values: np.ndarray) -> np.ndarray:
    """Keep the top 16 bits of each float32 (mantissa truncated, no rounding)."""
    bits = np.asarray(values, dtype=np.float32).view(np.uint32)
    return (bits & _BF16_MASK).view(np.float32)


def _hz_to_mel(hz):
    return np.float32(2595.0) * np.log10(np.float32(1.0) + hz / np.float32(700.0))


def _mel_to_hz(mel):
    return np.float32(700.0) * (
        np.power(np.float32(10.0), mel / np.float32(2595.0)) - np.float32(1.0)
    )


def as_mono_samples(samples) -> np.ndarray:
    """Coerce `samples` to a 1-D float32 array.

    Raises:
        ShapeMismatch: not numeric, or not of shape (n,).
    """
    try:
        audio = np.asarray(samples, dtype=np.float32)
    except (TypeError, ValueError) as exc:
        raise ShapeMismatch(f"Samples are not a numeric buffer: {exc}") from exc
    if audio.ndim != 1:
        raise ShapeMismatch(f"Expected mono samples of shape (n,), got {audio.shape}")
    return audio


def hann_window(win_length: int, quantize: bool = False) -> np.ndarray:
    """Symmetric Hann window of `win_length` float32 coefficients."""
    if win_length == 1:
        return np.ones(1, dtype=np.float32)
    n = np.arange(win_length, dtype=np.float32)
    phase = np.float32(2.0 * np.pi) * n / np.float32(win_length - 1)
    window = (np.float32(0.5) - np.float32(0.5) * np.cos(phase)).astype(np.float32)
    return quantize_to_bf16(window) if quantize else window


def mel_filterbank(
    sample_rate: int,
    n_fft: int,
    n_mels: int,
    quantize: bool = False,
) -> np.ndarray:
    """Build the triangular HTK mel filterbank.

    Args:
        sample_rate: Audio sample rate in Hz; filters span 0 Hz to Nyquist.
        n_fft: FFT size; one row per one-sided frequency bin.
        n_mels: Number of triangular filters.
        quantize: Truncate non-zero weights to bfloat16 precision.

    Returns:
        float32 matrix of shape (n_fft // 2 + 1, n_mels).

    Raises:
        InvalidFilterGeometry: if a filter center is not strictly inside its edges.
    """
    n_freq_bins = n_fft // 2 + 1
    mel_min = _hz_to_mel(np.float32(0.0))
    mel_max = _hz_to_mel(np.float32(sample_rate) / np.float32(2.0))

    steps = np.arange(n_mels + 2, dtype=np.float32) / np.float32(n_mels + 1)
    mel_points = mel_min + (mel_max - mel_min) * steps
    hz_points = _mel_to_hz(mel_points).astype(np.float32)
    fft_freqs = (
        np.arange(n_freq_bins, dtype=np.float32) * np.float32(sample_rate) / np.float32(n_fft)
    )

    left, center, right = hz_points[:-2], hz_points[1:-1], hz_points[2:]
    bad = np.flatnonzero((center <= left) | (right <= center))
    if bad.size:
        idx = int(bad[0])
        raise InvalidFilterGeometry(
            f"Invalid mel filter points for index {idx}: "
            f"left={left[idx]}, center={center[idx]}, right={right[idx]}"
        )

    freqs = fft_freqs[:, None]
    with np.errstate(divide="ignore", invalid="ignore"):
        rising = (freqs - left) / (center - left)
        falling = (right - freqs) / (right - center)
    weights = np.where(
        (freqs >= left) & (freqs <= center),
        rising,
        np.where((freqs > center) & (freqs <= right), falling, np.float32(0.0)),
    ).astype(np.float32)

    if quantize:
        weights = quantize_to_bf16(weights)
    return np.ascontiguousarray(weights)


class SpectralFrontend:
    """Convert mono 16 kHz samples to a (1, n_mels, frames) log-Mel tensor.

    Window, filterbank and FFT plan are built once and never mutated, so one
    frontend can be shared across threads.
    """

    def __init__(self, config: AcousticConfig):
        self.config = config
        quantize = config.quantize_coefficients
        self._window = hann_window(config.win_length, quantize)
        self._mel_filters = mel_filterbank(
            config.sample_rate,
            config.n_fft,
            config.n_mels,
            quantize,
        )
        self._rfft = functools.partial(scipy.fft.rfft, n=config.n_fft, axis=-1)
        self._window.setflags(write=False)
        self._mel_filters.setflags(write=False)

    @property
    def window(self) -> np.ndarray:
        return self._window

    @property
    def mel_filters(self) -> np.ndarray:
        """Filterbank, shape (n_freq_bins, n_mels)."""
        return self._mel_filters

    def frame_count(self, n_samples: int) -> int:
        """Number of full frames available in `n_samples` (no padding)."""
        win, hop = self.config.win_length, self.config.hop_length
        if n_samples < win:
            return 0
        return (n_samples - win) // hop + 1

    def _empty(self) -> Tuple[np.ndarray, int]:
        return np.zeros((1, self.config.n_mels, 0), dtype=np.float32), 0

    def extract_features(self, samples: np.ndarray) -> Tuple[np.ndarray, int]:
        """Extract log-Mel features.

        Args:
            samples: Mono float samples at the target rate, shape (n_samples,).

        Returns:
            (features, frame_count): features is float32 (1, n_mels, frame_count),
            mel-major / frame-minor. frame_count is 0 for input shorter than
            one window.
        """
        audio = as_mono_samples(samples)
        n_frames = self.frame_count(audio.shape[0])
        if n_frames == 0:
            return self._empty()

        win, hop = self.config.win_length, self.config.hop_length
        starts = np.arange(n_frames) * hop
        frames = audio[starts[:, None] + np.arange(win)[None, :]] * self._window

        spectrum = self._rfft(frames)
        power = (spectrum.real * spectrum.real + spectrum.imag * spectrum.imag).astype(np.float32)

        mel = power @ self._mel_filters
        mel = np.log(np.clip(mel, MEL_MIN_CLAMP, MEL_MAX_CLAMP)).astype(np.float32)
        features = np.ascontiguousarray(mel.T[None, :, :])
        return features, n_frames
