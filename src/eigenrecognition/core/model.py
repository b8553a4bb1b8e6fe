"""
Eigenface model and recognition result types.

A Model is built whole by the trainer or by the persistence loader and is
never modified afterwards: its arrays are private read-only copies, so one
Model can be shared between threads without locking.
"""

import math
import numbers
import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple

from eigenrecognition.core.distance import DistanceType, get_distance, max_pairwise_distance
from eigenrecognition.core.matrix import read_only
from eigenrecognition.errors import CorruptModelError, InvalidParameterError

UNKNOWN_SUBJECT_ID = 0

# Relative slack allowed when checking that variances are non-increasing
_ORDER_TOLERANCE = 1e-9


def check_threshold(value) -> float:
    """
    Validate a recognition threshold.

    Args:
        value: Candidate threshold

    Returns:
        float: The threshold as a float in [0, 1]

    Raises:
        InvalidParameterError: If the value is not a real number in [0, 1]
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(f"Recognition threshold must be a number, not {value!r}")
    threshold = float(value)
    if not math.isfinite(threshold) or threshold < 0.0 or threshold > 1.0:
        raise InvalidParameterError(f"Recognition threshold must be in [0, 1], not {threshold}")
    return threshold


@dataclass(frozen=True)
class ModelConfig:
    """
    Matching settings stored with a model.

    Attributes:
        distance_type: Metric used by the matcher
        recognition_threshold: Minimum accepted confidence
        image_shape: Expected face image shape (height, width)
    """
    distance_type: DistanceType
    recognition_threshold: float
    image_shape: Tuple[int, int]

    def __post_init__(self):
        object.__setattr__(self, 'distance_type', DistanceType.parse(self.distance_type))
        object.__setattr__(self, 'recognition_threshold', check_threshold(self.recognition_threshold))
        shape = tuple(int(s) for s in self.image_shape)
        if len(shape) != 2 or min(shape) < 1:
            raise InvalidParameterError(f"Image shape must be (height, width) with positive sizes, not {self.image_shape}")
        object.__setattr__(self, 'image_shape', shape)


@dataclass(frozen=True, eq=False)
class Subspace:
    """Mean face and eigenfaces, without any enrolled projections."""
    average_face: np.ndarray = field(repr=False)
    principal_directions: np.ndarray = field(repr=False)
    image_shape: Tuple[int, int]

    @property
    def eigen_vectors_no(self) -> int:
        return int(self.principal_directions.shape[0])


@dataclass(frozen=True, eq=False)
class Model:
    """
    Eigenface subspace plus the enrolled training projections.

    Attributes:
        average_face: Mean training image, shape (height, width)
        principal_directions: Unit eigenfaces, shape (eigen_vectors_no, height * width),
            ordered by descending variance
        variances: Eigenvalue of each direction, shape (eigen_vectors_no,)
        projected_training_vectors: Training coordinates, shape (train_faces_no, eigen_vectors_no)
        subject_ids: Label of each training row, shape (train_faces_no,)
        config: Matching settings
        distance_scale: Largest pairwise training distance under config.distance_type,
            used to turn distances into confidences
    """
    average_face: np.ndarray = field(repr=False)
    principal_directions: np.ndarray = field(repr=False)
    variances: np.ndarray = field(repr=False)
    projected_training_vectors: np.ndarray = field(repr=False)
    subject_ids: np.ndarray = field(repr=False)
    config: ModelConfig
    distance_scale: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'average_face', read_only(self.average_face))
        object.__setattr__(self, 'principal_directions', read_only(self.principal_directions))
        object.__setattr__(self, 'variances', read_only(self.variances))
        object.__setattr__(self, 'projected_training_vectors', read_only(self.projected_training_vectors))
        object.__setattr__(self, 'subject_ids', read_only(self.subject_ids, dtype=np.int64))
        self._validate()

        scale = max_pairwise_distance(self.projected_training_vectors,
                                      get_distance(self.config.distance_type),
                                      self.variances)
        object.__setattr__(self, 'distance_scale', scale)

    def _validate(self):
        """Check the structural invariants of the model."""
        if self.average_face.ndim != 2 or tuple(self.average_face.shape) != self.config.image_shape:
            raise CorruptModelError(
                f"Average face shape {self.average_face.shape} does not match image shape {self.config.image_shape}")

        n_pixels = self.config.image_shape[0] * self.config.image_shape[1]
        if self.principal_directions.ndim != 2 or self.principal_directions.shape[1] != n_pixels:
            raise CorruptModelError(
                f"Principal directions must have shape (eigen_vectors_no, {n_pixels}), "
                f"not {self.principal_directions.shape}")

        k = self.principal_directions.shape[0]
        if k < 1:
            raise CorruptModelError("Model has no principal directions")
        if self.variances.shape != (k,):
            raise CorruptModelError(f"Expected {k} variances, got shape {self.variances.shape}")

        if self.projected_training_vectors.ndim != 2 or self.projected_training_vectors.shape[1] != k:
            raise CorruptModelError(
                f"Projected training vectors must have {k} columns, not shape {self.projected_training_vectors.shape}")

        n = self.projected_training_vectors.shape[0]
        if self.subject_ids.shape != (n,):
            raise CorruptModelError(f"Expected {n} subject IDs, got shape {self.subject_ids.shape}")
        if k > n - 1:
            raise CorruptModelError(
                f"{k} principal directions cannot come from {n} training faces (at most {n - 1})")

        for name in ('average_face', 'principal_directions', 'variances', 'projected_training_vectors'):
            if not np.all(np.isfinite(getattr(self, name))):
                raise CorruptModelError(f"{name} contains non-finite values")

        if np.any(self.variances < 0):
            raise CorruptModelError("Variances must be non-negative")
        slack = _ORDER_TOLERANCE * max(1.0, float(self.variances[0]))
        if np.any(np.diff(self.variances) > slack):
            raise CorruptModelError("Variances must be ordered from largest to smallest")
        if np.any(self.subject_ids <= UNKNOWN_SUBJECT_ID):
            raise CorruptModelError("Subject IDs must be positive integers")

    @property
    def train_faces_no(self) -> int:
        return int(self.projected_training_vectors.shape[0])

    @property
    def eigen_vectors_no(self) -> int:
        return int(self.principal_directions.shape[0])

    @property
    def image_shape(self) -> Tuple[int, int]:
        return self.config.image_shape

    def allclose(self, other: 'Model', atol: float = 1e-6) -> bool:
        """
        Value equality with a floating point tolerance.

        Args:
            other: Model to compare with
            atol: Absolute tolerance for float arrays and the threshold

        Returns:
            bool: True if every field matches
        """
        if not isinstance(other, Model):
            return False
        if self.config.distance_type != other.config.distance_type \
                or self.config.image_shape != other.config.image_shape \
                or abs(self.config.recognition_threshold - other.config.recognition_threshold) > atol:
            return False
        if not np.array_equal(self.subject_ids, other.subject_ids):
            return False
        for name in ('average_face', 'principal_directions', 'variances', 'projected_training_vectors'):
            a, b = getattr(self, name), getattr(other, name)
            if a.shape != b.shape or not np.allclose(a, b, rtol=0.0, atol=atol):
                return False
        return True


class Candidate(NamedTuple):
    """One ranked identity with its confidence."""
    subject_id: int
    confidence: float


@dataclass(frozen=True)
class RecognitionResult:
    """
    Ranked candidates for one query face, best first.

    A rejected query holds the single candidate (UNKNOWN_SUBJECT_ID, top confidence).
    """
    candidates: Tuple[Candidate, ...]

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.candidates)

    def __getitem__(self, index: int) -> Candidate:
        return self.candidates[index]

    @property
    def best(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def is_unknown(self) -> bool:
        return self.best is None or self.best.subject_id == UNKNOWN_SUBJECT_ID

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to JSON-friendly types."""
        items: List[Dict[str, Any]] = [
            {'subject_id': int(c.subject_id), 'confidence': float(c.confidence)}
            for c in self.candidates
        ]
        return {'candidates': items, 'unknown': self.is_unknown}
