"""
Distance metrics in the eigenface subspace.

Each DistanceType has one strategy object. A strategy maps a query feature
vector and a matrix of training feature vectors to one distance per row.
Both metrics return sums of squared component differences (no square root).
"""

import numpy as np
from enum import Enum
from typing import Dict

from eigenrecognition.errors import InvalidParameterError

# Floor for variances used as Mahalanobis weights
MIN_VARIANCE = 1e-12


class DistanceType(Enum):
    EUCLIDEAN = "euclidean"
    MAHALANOBIS = "mahalanobis"

    @classmethod
    def parse(cls, value) -> 'DistanceType':
        """
        Convert a DistanceType or its (case-insensitive) name to a DistanceType.

        Raises:
            InvalidParameterError: If the value names no known metric
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise InvalidParameterError(
            f"Unrecognized distance type {value!r}. Use 'euclidean' or 'mahalanobis'.")


class Distance:
    """Base class for subspace distance strategies."""

    distance_type: DistanceType = None

    def __call__(self, query: np.ndarray, rows: np.ndarray, variances: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class EuclideanDistance(Distance):
    """Sum of squared component differences."""

    distance_type = DistanceType.EUCLIDEAN

    def __call__(self, query: np.ndarray, rows: np.ndarray, variances: np.ndarray) -> np.ndarray:
        diff = np.atleast_2d(rows) - query
        return np.sum(diff ** 2, axis=1)


class MahalanobisDistance(Distance):
    """
    Sum of squared component differences, each divided by the variance of its axis.

    Low-variance directions weigh more, so axes where the training faces are
    tightly clustered dominate the comparison.
    """

    distance_type = DistanceType.MAHALANOBIS

    def __call__(self, query: np.ndarray, rows: np.ndarray, variances: np.ndarray) -> np.ndarray:
        weights = 1.0 / np.maximum(np.asarray(variances, dtype=np.float64), MIN_VARIANCE)
        diff = np.atleast_2d(rows) - query
        return np.sum((diff ** 2) * weights, axis=1)


_STRATEGIES: Dict[DistanceType, Distance] = {
    DistanceType.EUCLIDEAN: EuclideanDistance(),
    DistanceType.MAHALANOBIS: MahalanobisDistance(),
}


def get_distance(distance_type) -> Distance:
    """Return the strategy for a DistanceType (or its name)."""
    return _STRATEGIES[DistanceType.parse(distance_type)]


def max_pairwise_distance(rows: np.ndarray, distance: Distance, variances: np.ndarray) -> float:
    """
    Largest distance between any two rows under the given metric.

    Runs row by row so memory stays at O(n_rows * n_components).
    """
    rows = np.asarray(rows, dtype=np.float64)
    largest = 0.0
    for i in range(len(rows) - 1):
        d = distance(rows[i], rows[i + 1:], variances)
        largest = max(largest, float(np.max(d)))
    return largest
