"""Single-slot engine cache keyed by (model location, runtime options).

At most one model is resident per cache. A different key (new model path *or*
new speed/accelerator options) forces a full reload; the same key reuses the
loaded engine. One lock hold covers decide/(re)load/transcribe, so callers
never see a half-loaded engine or have the model swapped mid-call.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar, Union

import numpy as np

from ctc_asr.audio.features import as_mono_samples
from ctc_asr.errors import CacheUnavailable, TranscriptionError
from ctc_asr.pipeline.engine import TranscriptionEngine, TranscriptionReport
from ctc_asr.runtime.options import RuntimeOptions

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], TranscriptionEngine]
T = TypeVar("T")


def cache_key(model_dir: Union[str, Path], options: RuntimeOptions) -> str:
    """Fingerprint of a model location plus its runtime options."""
    return f"{model_dir}?{options.cache_fragment()}"


@dataclass
class CacheEntry:
    key: str
    engine: TranscriptionEngine


class EngineCache:
    """Holds at most one loaded TranscriptionEngine.

    The cache also owns the current runtime options, so switching options and
    loading under them never interleave. Calls that pass `options=None` use
    the current ones.

    If anything other than a TranscriptionError escapes while the lock is held
    the cache is marked poisoned and every later call raises CacheUnavailable
    until reset().
    """

    def __init__(
        self,
        engine_factory: EngineFactory = TranscriptionEngine,
        runtime_options: Optional[RuntimeOptions] = None,
    ):
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None
        self._runtime_options = runtime_options or RuntimeOptions()
        self._last_profile_summary = ""
        self._poisoned = False
        self.loads = 0

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            if self._poisoned:
                raise CacheUnavailable("Engine cache lock poisoned by an earlier failure")
            try:
                yield
            except TranscriptionError:
                raise
            except BaseException:
                self._poisoned = True
                logger.error("Engine cache poisoned; state left undefined by a failed holder")
                raise

    @property
    def current_key(self) -> Optional[str]:
        with self._lock:
            return self._entry.key if self._entry else None

    @property
    def runtime_options(self) -> RuntimeOptions:
        with self._lock:
            return self._runtime_options

    @property
    def last_profile_summary(self) -> str:
        with self._locked():
            return self._last_profile_summary

    def set_runtime_options(self, options: RuntimeOptions) -> RuntimeOptions:
        """Switch the current options; a change drops the loaded engine.

        The last profiling summary is kept. Returns the options now in effect.
        """
        with self._locked():
            if options != self._runtime_options:
                logger.info(
                    "Runtime options changed: %s -> %s",
                    self._runtime_options.cache_fragment(),
                    options.cache_fragment(),
                )
                self._runtime_options = options
                self._drop_entry()
            return self._runtime_options

    def _drop_entry(self) -> None:
        if self._entry is not None:
            self._entry.engine.unload()
            logger.info("Unloaded engine %s", self._entry.key)
        self._entry = None

    def _ensure_loaded(
        self,
        model_dir: Union[str, Path],
        options: Optional[RuntimeOptions],
    ) -> CacheEntry:
        if options is None:
            options = self._runtime_options
        key = cache_key(model_dir, options)
        if self._entry is not None and self._entry.key == key:
            return self._entry

        previous = self._entry.key if self._entry else None
        logger.info("Loading engine for %s (previous: %s)", key, previous)
        engine = self._engine_factory()
        engine.load(model_dir, options)
        if self._entry is not None:
            self._entry.engine.unload()
        self._entry = CacheEntry(key=key, engine=engine)
        self.loads += 1
        return self._entry

    def ensure_loaded(
        self,
        model_dir: Union[str, Path],
        options: Optional[RuntimeOptions] = None,
    ) -> TranscriptionEngine:
        """Return the engine for (model_dir, options), loading it if the key changed.

        A failed load leaves the previous entry in place.
        """
        with self._locked():
            return self._ensure_loaded(model_dir, options).engine

    def transcribe(
        self,
        model_dir: Union[str, Path],
        options: Optional[RuntimeOptions],
        samples: np.ndarray,
    ) -> TranscriptionReport:
        """Ensure the engine is loaded and transcribe, atomically.

        Raises:
            ShapeMismatch: `samples` is not a 1-D numeric buffer (cache untouched).
        """
        samples = as_mono_samples(samples)
        with self._locked():
            entry = self._ensure_loaded(model_dir, options)
            report = entry.engine.transcribe(samples)
            self._last_profile_summary = report.to_json()
            return report

    def run_locked(
        self,
        model_dir: Union[str, Path],
        options: Optional[RuntimeOptions],
        fn: Callable[[TranscriptionEngine], T],
        summarize: Optional[Callable[[T], str]] = None,
    ) -> T:
        """Call `fn(engine)` with the engine loaded, under the cache lock.

        If given, `summarize(result)` becomes the last profiling summary.
        """
        with self._locked():
            result = fn(self._ensure_loaded(model_dir, options).engine)
            if summarize is not None:
                self._last_profile_summary = summarize(result)
            return result

    def unload(self) -> None:
        """Drop the cached engine and the profiling summary; idempotent."""
        with self._locked():
            self._drop_entry()
            self._last_profile_summary = ""

    def reset(self) -> None:
        """Clear poisoning and drop any entry."""
        with self._lock:
            self._poisoned = False
            self._entry = None
            self._last_profile_summary = ""

    @property
    def poisoned(self) -> bool:
        return self._poisoned
