"""
Eigenface face recognition.

Builds an eigenface subspace from labeled face images and matches query faces
against the enrolled subjects:
- core: training, projection, matching, persistence, evaluation
- utils: logging helpers
- cli: command line interface
"""

from .errors import (
    CorruptModelError, DimensionMismatchError, FileWriteError, ImageLoadError, InsufficientTrainingDataError,
    InvalidParameterError, MissingFileError, NotReadyError, RecognitionError, TrainingCancelledError
)
from .config import RecognizerConfig
from .core import (
    UNKNOWN_SUBJECT_ID, Candidate, DistanceType, EigenfaceRecognizer, EvaluationReport, LabeledFace,
    Model, RecognitionResult, RecognizerState, SourceKind
)

__version__ = "0.1.0"

__all__ = [
    'CorruptModelError',
    'DimensionMismatchError',
    'FileWriteError',
    'ImageLoadError',
    'InsufficientTrainingDataError',
    'InvalidParameterError',
    'MissingFileError',
    'NotReadyError',
    'RecognitionError',
    'TrainingCancelledError',
    'RecognizerConfig',
    'UNKNOWN_SUBJECT_ID',
    'Candidate',
    'DistanceType',
    'EigenfaceRecognizer',
    'EvaluationReport',
    'LabeledFace',
    'Model',
    'RecognitionResult',
    'RecognizerState',
    'SourceKind'
]
