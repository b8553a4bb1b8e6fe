# config.py
import os
import numpy as np
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_RECOGNITION_THRESHOLD = 0.6
DEFAULT_DISTANCE_TYPE = "mahalanobis"
DEFAULT_IMAGE_EXTENSION = "pgm"

DEFAULT_TRAINING_DATA_FILE = "trainingData.joblib"
AVERAGE_IMAGE_FILE = "outAverageImage.pgm"
EIGENFACES_IMAGE_FILE = "outEigenfacesImage.pgm"

MODEL_SCHEMA_VERSION = 1

# Eigenfaces debug composite
EIGENFACES_GRID_COLUMNS = 8

# Upper bound for projection worker threads
MAX_WORKERS = os.cpu_count() or 1


@dataclass(frozen=True)
class RecognizerConfig:
    """
    Settings owned by an EigenfaceRecognizer.

    Attributes:
        recognition_threshold: Minimum confidence (0..1) for a subject to be reported
        distance_type: "euclidean" or "mahalanobis" (or a DistanceType member)
        image_extension: Extension of face images inside a directory training source
        default_model_path: File used by save/load when no path is given
        eigen_vectors_no: Requested number of eigenfaces, None keeps trainFacesNo - 1
        max_workers: Thread pool size for per-image projection
    """
    recognition_threshold: float = DEFAULT_RECOGNITION_THRESHOLD
    distance_type: object = DEFAULT_DISTANCE_TYPE
    image_extension: str = DEFAULT_IMAGE_EXTENSION
    default_model_path: str = DEFAULT_TRAINING_DATA_FILE
    eigen_vectors_no: Optional[int] = None
    max_workers: Optional[int] = None

    def validate(self) -> 'RecognizerConfig':
        """
        Check every field and return a normalised copy.

        Raises:
            InvalidParameterError: If a field is out of range or of the wrong type
        """
        from eigenrecognition.core.model import DistanceType, check_threshold
        from eigenrecognition.errors import InvalidParameterError

        threshold = check_threshold(self.recognition_threshold)
        distance_type = DistanceType.parse(self.distance_type)

        extension = str(self.image_extension or "").strip().lstrip(".").lower()
        if not extension:
            raise InvalidParameterError("Image extension must not be empty")

        if not self.default_model_path:
            raise InvalidParameterError("Default model path must not be empty")

        if self.eigen_vectors_no is not None:
            if isinstance(self.eigen_vectors_no, bool) \
                    or not isinstance(self.eigen_vectors_no, (int, np.integer)) \
                    or self.eigen_vectors_no < 1:
                raise InvalidParameterError(
                    f"eigen_vectors_no must be a positive integer, not {self.eigen_vectors_no!r}")

        if self.max_workers is not None:
            if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, (int, np.integer)) \
                    or self.max_workers < 1:
                raise InvalidParameterError(
                    f"max_workers must be a positive integer, not {self.max_workers!r}")

        eigen_vectors_no = int(self.eigen_vectors_no) if self.eigen_vectors_no is not None else None
        max_workers = int(self.max_workers) if self.max_workers is not None else None

        return replace(self, recognition_threshold=threshold, distance_type=distance_type,
                       image_extension=extension, default_model_path=str(self.default_model_path),
                       eigen_vectors_no=eigen_vectors_no, max_workers=max_workers)
