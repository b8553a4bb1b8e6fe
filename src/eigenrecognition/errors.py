"""
Error types raised by the eigenface recognition system.

Every public operation reports failure by raising one of these exceptions.
They all derive from RecognitionError so callers can catch the whole family
at once.
"""


class RecognitionError(Exception):
    """Base class for all recognition errors."""


class InvalidParameterError(RecognitionError, ValueError):
    """A threshold, distance type, results count or similar argument is invalid."""


class InsufficientTrainingDataError(RecognitionError):
    """Fewer than two usable training images were provided."""


class DimensionMismatchError(RecognitionError, ValueError):
    """An image or feature vector does not have the size the model expects."""


class MissingFileError(RecognitionError, FileNotFoundError):
    """A model file, manifest or image does not exist."""


class CorruptModelError(RecognitionError):
    """Persisted or constructed model data is structurally inconsistent."""


class NotReadyError(RecognitionError):
    """Classification or evaluation was requested before a model was trained or loaded."""


class TrainingCancelledError(RecognitionError):
    """A training run was cancelled before the model was complete."""


class ImageLoadError(RecognitionError):
    """An image file exists but could not be decoded."""


class FileWriteError(RecognitionError, OSError):
    """A model file or debug image could not be written."""
