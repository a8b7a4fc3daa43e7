"""Error taxonomy for loading and running the transcription core.

Load-time errors (config, assets, backend init, schema) are permanent for the
given model + runtime options. Per-call errors (inference, output, shape) leave
the loaded engine usable.
"""


class TranscriptionError(Exception):
    """Base class for every error raised by ctc_asr."""


class InvalidConfig(TranscriptionError):
    """Acoustic parameters are malformed or unsupported."""


class InvalidFilterGeometry(TranscriptionError):
    """A mel filter's center does not lie strictly between its edges."""


class InvalidVocabulary(TranscriptionError):
    """Vocabulary file is malformed or lacks the blank token."""


class MissingAsset(TranscriptionError, FileNotFoundError):
    """A required model file is absent."""


class UnsupportedSampleRate(TranscriptionError):
    """Model config declares a sample rate other than the supported one."""


class UnsupportedModelId(TranscriptionError):
    """Model identifier is not in the registry."""


class BackendInitFailed(TranscriptionError):
    """The inference backend could not create a session."""


class SchemaResolutionFailed(TranscriptionError):
    """Session inputs/outputs could not be matched to features/lengths/logits."""


class NotLoaded(TranscriptionError):
    """transcribe() called before a model was loaded."""


class InferenceFailed(TranscriptionError):
    """The backend raised while running the graph."""


class OutputNotFound(TranscriptionError):
    """The logits output is missing from the backend's results."""


class ShapeMismatch(TranscriptionError):
    """A tensor returned by the backend has the wrong rank."""


class CacheUnavailable(TranscriptionError):
    """The engine cache was left in an undefined state by a failed holder."""
