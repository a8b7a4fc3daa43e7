"""Runtime option identifiers: speed profile and accelerator mode."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SpeedProfile(str, Enum):
    BALANCED = "balanced"
    FAST = "fast"
    QUALITY = "quality"

    @classmethod
    def from_id(cls, value: Optional[str]) -> "SpeedProfile":
        """Unrecognised ids fall back to balanced."""
        for profile in cls:
            if profile.value == value:
                return profile
        return cls.BALANCED

    @property
    def nnapi_use_fp16(self) -> bool:
        return self is not SpeedProfile.QUALITY

    @property
    def cpu_threads(self) -> Tuple[int, int, bool]:
        """(intra_op_threads, inter_op_threads, parallel_execution) for CPU mode."""
        return _CPU_THREADS[self]


_CPU_THREADS = {
    SpeedProfile.BALANCED: (4, 1, False),
    SpeedProfile.FAST: (6, 1, False),
    SpeedProfile.QUALITY: (4, 1, True),
}


class AcceleratorMode(str, Enum):
    AUTO = "auto"
    CPU = "cpu"

    @classmethod
    def from_id(cls, value: Optional[str]) -> "AcceleratorMode":
        """Unrecognised ids fall back to auto."""
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.AUTO


def _rank(member: Enum) -> int:
    return list(type(member)).index(member)


@functools.total_ordering
@dataclass(frozen=True)
class RuntimeOptions:
    """Speed/accelerator preference; part of the engine cache key."""

    speed_profile: SpeedProfile = SpeedProfile.BALANCED
    accelerator_mode: AcceleratorMode = AcceleratorMode.AUTO

    @classmethod
    def from_ids(cls, speed_profile: Optional[str], accelerator_mode: Optional[str]) -> "RuntimeOptions":
        return cls(
            speed_profile=SpeedProfile.from_id(speed_profile),
            accelerator_mode=AcceleratorMode.from_id(accelerator_mode),
        )

    def cache_fragment(self) -> str:
        return f"profile={self.speed_profile.value};accelerator={self.accelerator_mode.value}"

    def _sort_key(self) -> Tuple[int, int]:
        return _rank(self.speed_profile), _rank(self.accelerator_mode)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RuntimeOptions):
            return NotImplemented
        return self._sort_key() < other._sort_key()
