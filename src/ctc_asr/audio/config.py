"""Acoustic model hyperparameters.

Encoding standards for the supported CTC model family:
- Audio: mono 16 kHz
- Features: 64-bin log-Mel filterbanks (HTK mel scale)
- STFT: 20 ms window / 10 ms hop, FFT 320, no centering
- Encoder: 4x temporal subsampling
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from ctc_asr.errors import InvalidConfig, UnsupportedSampleRate

TARGET_SAMPLE_RATE = 16_000
SUPPORTED_MEL_SCALE = "htk"

# ASCII digits with an optional leading plus; no underscores or other scripts
_UNSIGNED_INT = re.compile(r"\+?[0-9]+")

# Config file key -> dataclass field
_INT_KEYS: Dict[str, str] = {
    "sample_rate": "sample_rate",
    "features": "n_mels",
    "win_length": "win_length",
    "hop_length": "hop_length",
    "n_fft": "n_fft",
    "subsampling_factor": "subsampling_factor",
}
_STR_KEYS: Dict[str, str] = {
    "mel_scale": "mel_scale",
    "model_name": "model_name",
}


@dataclass(frozen=True)
class AcousticConfig:
    """Feature extraction and encoder parameters read from the model config."""

    sample_rate: int = TARGET_SAMPLE_RATE
    n_mels: int = 64
    win_length: int = 320
    hop_length: int = 160
    n_fft: int = 320
    center: bool = False
    mel_scale: str = SUPPORTED_MEL_SCALE
    subsampling_factor: int = 4
    model_name: str = "v3_e2e_ctc"

    def __post_init__(self) -> None:
        if self.sample_rate != TARGET_SAMPLE_RATE:
            raise UnsupportedSampleRate(
                f"Unsupported sample rate {self.sample_rate} Hz; "
                f"expected {TARGET_SAMPLE_RATE} Hz"
            )
        if self.hop_length <= 0:
            raise InvalidConfig(f"hop_length must be > 0 (got {self.hop_length})")
        if self.win_length <= 0:
            raise InvalidConfig(f"win_length must be > 0 (got {self.win_length})")
        if self.n_fft <= 0:
            raise InvalidConfig(f"n_fft must be > 0 (got {self.n_fft})")
        if self.n_fft < self.win_length:
            raise InvalidConfig(
                f"n_fft ({self.n_fft}) < win_length ({self.win_length})"
            )
        if self.n_mels <= 0:
            raise InvalidConfig(f"features (n_mels) must be > 0 (got {self.n_mels})")
        if self.mel_scale.lower() != SUPPORTED_MEL_SCALE:
            raise InvalidConfig(
                f"Unsupported mel_scale '{self.mel_scale}'; expected '{SUPPORTED_MEL_SCALE}'"
            )
        if self.center:
            raise InvalidConfig("center=true is not supported for this model")

    @property
    def quantize_coefficients(self) -> bool:
        """Whether window/filter coefficients are truncated to bfloat16 precision."""
        return "v3" in self.model_name or (not self.center and self.n_fft == 320)

    @property
    def n_freq_bins(self) -> int:
        """Number of one-sided FFT bins."""
        return self.n_fft // 2 + 1

    @classmethod
    def from_text(cls, content: str) -> "AcousticConfig":
        """Parse `key: value` lines; unknown keys and bad values keep defaults."""
        values: Dict[str, Union[int, bool, str]] = {}
        for raw_line in content.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if not line:
                continue
            key, sep, value = line.partition(":")
            if not sep:
                continue
            key, value = key.strip(), value.strip()
            if key in _INT_KEYS:
                if _UNSIGNED_INT.fullmatch(value):
                    values[_INT_KEYS[key]] = int(value)
            elif key in _STR_KEYS:
                values[_STR_KEYS[key]] = value
            elif key == "center":
                if value in ("true", "false"):
                    values["center"] = value == "true"
        return cls(**values)  # type: ignore[arg-type]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AcousticConfig":
        """Read and parse a model config file."""
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidConfig(f"Failed to read config file {path}: {exc}") from exc
        return cls.from_text(content)
