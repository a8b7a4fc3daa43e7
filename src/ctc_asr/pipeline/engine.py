"""Transcription engine: samples -> log-Mel -> acoustic model -> greedy CTC -> text.

The model is reached only through the InferenceSession protocol, so any
backend (ONNX Runtime, TorchScript, a test fake) can be plugged in via
`session_factory`.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Collection, Dict, Optional, Sequence, Union

import numpy as np

from ctc_asr.audio.config import AcousticConfig
from ctc_asr.audio.features import SpectralFrontend
from ctc_asr.decoder.ctc_greedy import CtcGreedyDecoder, encoded_length
from ctc_asr.decoder.vocabulary import Vocabulary
from ctc_asr.errors import (
    BackendInitFailed,
    InferenceFailed,
    MissingAsset,
    NotLoaded,
    OutputNotFound,
    ShapeMismatch,
    TranscriptionError,
)
from ctc_asr.models.onnx_session import create_onnx_session
from ctc_asr.models.registry import CONFIG_FILENAME, VOCAB_FILENAME, WEIGHTS_FILENAMES
from ctc_asr.models.session import InferenceSession, SessionFactory, TensorNames, resolve_tensor_names
from ctc_asr.runtime.options import RuntimeOptions
from ctc_asr.runtime.plan import RuntimePlan, build_runtime_plan

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


@dataclass(frozen=True)
class StageTimings:
    """Wall-clock milliseconds per stage (observational only)."""

    feature_extraction_ms: int = 0
    ort_run_ms: int = 0
    decode_ms: int = 0
    total_ms: int = 0


@dataclass(frozen=True)
class TranscriptionReport:
    """Decoded text plus timings and the provider plan it ran under."""

    text: str
    timings: StageTimings
    provider_summary: str

    def to_dict(self) -> Dict[str, Any]:
        """Flat diagnostic record."""
        return {"provider": self.provider_summary, **asdict(self.timings)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass
class LoadedModel:
    """Everything built by one successful load."""

    model_dir: Path
    weights_path: Path
    config: AcousticConfig
    frontend: SpectralFrontend
    decoder: CtcGreedyDecoder
    plan: RuntimePlan
    session: InferenceSession
    tensor_names: TensorNames


def find_weights(model_dir: Path, filenames: Sequence[str] = WEIGHTS_FILENAMES) -> Path:
    """First existing weights file in `filenames` order.

    Raises:
        MissingAsset: none of `filenames` exists in `model_dir`.
    """
    for filename in filenames:
        path = model_dir / filename
        if path.is_file():
            return path
    raise MissingAsset(
        f"Missing model file in {model_dir}. Expected one of: {', '.join(filenames)}"
    )


def _require(path: Path, what: str) -> Path:
    if not path.is_file():
        raise MissingAsset(f"Missing {what} file: {path}")
    return path


class TranscriptionEngine:
    """Loads one acoustic model and transcribes mono 16 kHz samples.

    Interface:
      engine = TranscriptionEngine()
      engine.load("models/gigaam-v3-e2e-ctc-int8", RuntimeOptions())
      report = engine.transcribe(samples)
      engine.unload()
    """

    def __init__(
        self,
        session_factory: SessionFactory = create_onnx_session,
        available_providers: Optional[Collection[str]] = None,
        weights_filenames: Sequence[str] = WEIGHTS_FILENAMES,
    ):
        """
        Args:
            session_factory: Builds the backend session from (weights path, plan).
            available_providers: Provider names for the plan summary; probed
                from onnxruntime when None.
            weights_filenames: Accepted weight file names, in lookup order.
        """
        self.session_factory = session_factory
        self.available_providers = available_providers
        self.weights_filenames = tuple(weights_filenames)
        self._model: Optional[LoadedModel] = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def model_dir(self) -> Optional[Path]:
        return self._model.model_dir if self._model else None

    @property
    def plan(self) -> Optional[RuntimePlan]:
        return self._model.plan if self._model else None

    @property
    def session(self) -> Optional[InferenceSession]:
        return self._model.session if self._model else None

    @property
    def provider_summary(self) -> str:
        return self._model.plan.summary if self._model else ""

    def load(self, model_dir: Union[str, Path], runtime_options: RuntimeOptions) -> None:
        """Load weights, vocabulary and config from `model_dir`.

        Replaces the current model only if every step succeeds.

        Raises:
            MissingAsset, InvalidVocabulary, UnsupportedSampleRate, InvalidConfig,
            InvalidFilterGeometry, BackendInitFailed, SchemaResolutionFailed.
        """
        model_dir = Path(model_dir)
        weights_path = find_weights(model_dir, self.weights_filenames)
        vocab_path = _require(model_dir / VOCAB_FILENAME, "vocab")
        config_path = _require(model_dir / CONFIG_FILENAME, "config")

        vocabulary = Vocabulary.from_file(vocab_path)
        config = AcousticConfig.from_file(config_path)
        frontend = SpectralFrontend(config)

        plan = build_runtime_plan(runtime_options, self.available_providers)
        try:
            session = self.session_factory(str(weights_path), plan)
        except TranscriptionError:
            raise
        except Exception as exc:
            raise BackendInitFailed(f"Failed to create session for {weights_path}: {exc}") from exc
        logger.info(
            "Runtime plan: %s, intra_threads=%d, inter_threads=%d, parallel_execution=%s",
            plan.summary,
            plan.intra_op_threads,
            plan.inter_op_threads,
            plan.parallel_execution,
        )
        for node in session.get_inputs():
            logger.info("Model input: name=%s, shape=%s", node.name, getattr(node, "shape", None))
        for node in session.get_outputs():
            logger.info("Model output: name=%s", node.name)

        tensor_names = resolve_tensor_names(session)

        self._model = LoadedModel(
            model_dir=model_dir,
            weights_path=weights_path,
            config=config,
            frontend=frontend,
            decoder=CtcGreedyDecoder(vocabulary),
            plan=plan,
            session=session,
            tensor_names=tensor_names,
        )
        logger.info(
            "Loaded %s (vocab=%d, blank=%d, n_mels=%d, subsampling=%d)",
            weights_path,
            len(vocabulary),
            vocabulary.blank_id,
            config.n_mels,
            config.subsampling_factor,
        )

    def unload(self) -> None:
        """Drop the loaded model; safe to call repeatedly."""
        self._model = None

    def transcribe(self, samples: np.ndarray) -> TranscriptionReport:
        """Transcribe mono float samples at the model's sample rate.

        Raises:
            NotLoaded: no model loaded.
            InferenceFailed: backend raised during run.
            OutputNotFound: logits output missing from the results.
            ShapeMismatch: logits are not rank 3.
        """
        model = self._model
        if model is None:
            raise NotLoaded("Model is not loaded; call load() first")

        total_start = time.perf_counter()

        feature_start = time.perf_counter()
        features, frame_count = model.frontend.extract_features(samples)
        feature_extraction_ms = _elapsed_ms(feature_start)

        if frame_count == 0:
            return TranscriptionReport(
                text="",
                timings=StageTimings(
                    feature_extraction_ms=feature_extraction_ms,
                    total_ms=_elapsed_ms(total_start),
                ),
                provider_summary=model.plan.summary,
            )

        names = model.tensor_names
        input_feed = {
            names.features: features,
            names.feature_lengths: np.array([frame_count], dtype=np.int64),
        }

        ort_start = time.perf_counter()
        try:
            outputs = model.session.run(None, input_feed)
        except Exception as exc:
            raise InferenceFailed(f"Inference failed: {exc}") from exc
        ort_run_ms = _elapsed_ms(ort_start)

        decode_start = time.perf_counter()
        logits = self._select_logits(model, outputs)
        enc_len = encoded_length(frame_count, model.config.subsampling_factor)
        _, text = model.decoder.decode(logits, enc_len)
        decode_ms = _elapsed_ms(decode_start)

        return TranscriptionReport(
            text=text,
            timings=StageTimings(
                feature_extraction_ms=feature_extraction_ms,
                ort_run_ms=ort_run_ms,
                decode_ms=decode_ms,
                total_ms=_elapsed_ms(total_start),
            ),
            provider_summary=model.plan.summary,
        )

    @staticmethod
    def _select_logits(model: LoadedModel, outputs: Sequence[Any]) -> np.ndarray:
        output_names = [node.name for node in model.session.get_outputs()]
        by_name = dict(zip(output_names, outputs or []))
        logits = by_name.get(model.tensor_names.logits)
        if logits is None:
            raise OutputNotFound(
                f"Output '{model.tensor_names.logits}' not found in inference outputs"
            )
        try:
            logits = np.asarray(logits, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise ShapeMismatch(f"Output '{model.tensor_names.logits}' is not numeric: {exc}") from exc
        if logits.ndim != 3:
            raise ShapeMismatch(
                f"Output '{model.tensor_names.logits}' has shape {logits.shape}; expected rank 3"
            )
        return logits
