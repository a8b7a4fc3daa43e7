"""Supported model identifiers and their on-disk asset layout.

Each model lives in its own subdirectory under a models root:

    <models_root>/<directory_name>/
        <weights_filename>        (v3_e2e_ctc.int8.onnx | v3_e2e_ctc.onnx)
        v3_e2e_ctc_vocab.txt
        v3_e2e_ctc.yaml
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Union

from ctc_asr.errors import MissingAsset, UnsupportedModelId

VOCAB_FILENAME = "v3_e2e_ctc_vocab.txt"
CONFIG_FILENAME = "v3_e2e_ctc.yaml"

# Weight files the engine accepts, in lookup order.
WEIGHTS_FILENAMES: Tuple[str, ...] = ("v3_e2e_ctc.int8.onnx", "v3_e2e_ctc.onnx")


@dataclass(frozen=True)
class ModelSpec:
    """A named acoustic model and its files."""

    model_id: str
    directory_name: str
    display_name: str
    quality_hint: str
    weights_filename: str

    @property
    def required_files(self) -> Tuple[str, ...]:
        return (self.weights_filename, VOCAB_FILENAME, CONFIG_FILENAME)


# fmt: off
_REGISTRY: Dict[str, ModelSpec] = {
    spec.model_id: spec
    for spec in [
        ModelSpec(
            model_id="gigaam-v3-e2e-ctc-int8",
            directory_name="gigaam-v3-e2e-ctc-int8",
            display_name="GigaAM v3 e2e-CTC (int8)",
            quality_hint="faster, smaller",
            weights_filename="v3_e2e_ctc.int8.onnx",
        ),
        ModelSpec(
            model_id="gigaam-v3-e2e-ctc",
            directory_name="gigaam-v3-e2e-ctc",
            display_name="GigaAM v3 e2e-CTC (full)",
            quality_hint="higher quality",
            weights_filename="v3_e2e_ctc.onnx",
        ),
    ]
}
# fmt: on

DEFAULT_MODEL_ID = "gigaam-v3-e2e-ctc-int8"


def lookup(model_id: str) -> ModelSpec:
    """Return the ModelSpec for `model_id`.

    Raises:
        UnsupportedModelId: if the id is not registered.
    """
    try:
        return _REGISTRY[model_id]
    except KeyError:
        raise UnsupportedModelId(
            f"Unsupported model id: {model_id!r}. Known: {sorted(_REGISTRY)}"
        ) from None


def list_all() -> List[ModelSpec]:
    """All registered models, sorted by id."""
    return sorted(_REGISTRY.values(), key=lambda s: s.model_id)


def resolve_model_directory(models_root: Union[str, Path], model_id: str) -> Path:
    return Path(models_root) / lookup(model_id).directory_name


def validate_model_directory(model_dir: Union[str, Path], model_id: str) -> None:
    """Check that `model_dir` holds every file `model_id` needs.

    Raises:
        UnsupportedModelId: unknown id.
        MissingAsset: directory or a required file is absent.
    """
    spec = lookup(model_id)
    model_dir = Path(model_dir)
    if not model_dir.is_dir():
        raise MissingAsset(f"Model directory does not exist: {model_dir}")
    for filename in spec.required_files:
        path = model_dir / filename
        if not path.is_file():
            raise MissingAsset(f"Required file not found: {path}")
