"""
Nearest-neighbour matching of projected faces against a model.

Distances to every training projection are converted to confidences in [0, 1]
with

    confidence = 1 - sqrt(distance / model.distance_scale)

clipped to [0, 1], where model.distance_scale is the largest distance between
two training projections under the same metric. A query as far from a
training face as the two most distant training faces are from each other
scores 0; an exact match scores 1.
"""

import numpy as np
from typing import List, Tuple

from eigenrecognition.core.distance import get_distance
from eigenrecognition.core.model import UNKNOWN_SUBJECT_ID, Candidate, Model, RecognitionResult
from eigenrecognition.errors import DimensionMismatchError, InvalidParameterError


def check_results_no(results_no) -> int:
    """
    Validate the number of requested results.

    Raises:
        InvalidParameterError: If results_no is not an integer >= 1
    """
    if isinstance(results_no, bool) or not isinstance(results_no, (int, np.integer)) or results_no < 1:
        raise InvalidParameterError(f"results_no must be an integer >= 1, not {results_no!r}")
    return int(results_no)


def distances_to_confidences(distances: np.ndarray, scale: float) -> np.ndarray:
    """
    Map distances to confidences; larger distance gives lower confidence.

    Args:
        distances: Non-negative distances
        scale: Reference distance (largest training pairwise distance)

    Returns:
        np.ndarray: Confidences in [0, 1]
    """
    d = np.maximum(np.asarray(distances, dtype=np.float64), 0.0)
    if scale <= 0.0:
        return np.where(d <= 0.0, 1.0, 0.0)
    return np.clip(1.0 - np.sqrt(d / scale), 0.0, 1.0)


def rank_training_faces(query_feature: np.ndarray, model: Model) -> Tuple[np.ndarray, np.ndarray]:
    """
    Order training rows from best to worst match.

    Args:
        query_feature: Projected query of length model.eigen_vectors_no
        model: Trained or loaded model

    Returns:
        Tuple[np.ndarray, np.ndarray]: Row indices sorted by descending confidence
            (ties by ascending index) and the confidence of every row

    Raises:
        DimensionMismatchError: If the feature length differs from the model's
    """
    query = np.asarray(query_feature, dtype=np.float64).reshape(-1)
    if query.shape[0] != model.eigen_vectors_no:
        raise DimensionMismatchError(
            f"Feature vector has {query.shape[0]} components, the model uses {model.eigen_vectors_no}")

    distance = get_distance(model.config.distance_type)
    distances = distance(query, model.projected_training_vectors, model.variances)
    confidences = distances_to_confidences(distances, model.distance_scale)

    order = np.argsort(-confidences, kind='stable')
    return order, confidences


def classify(query_feature: np.ndarray, model: Model, results_no: int = 1) -> RecognitionResult:
    """
    Find the subjects closest to a projected face.

    Each subject appears once, with its best-scoring training face. If the best
    confidence is below the model's recognition threshold the result collapses to
    the single candidate (0, best confidence). A confidence equal to the
    threshold is accepted.

    Args:
        query_feature: Projected query of length model.eigen_vectors_no
        model: Trained or loaded model
        results_no: Maximum number of subjects to return

    Returns:
        RecognitionResult: Candidates sorted by descending confidence
    """
    results_no = check_results_no(results_no)
    order, confidences = rank_training_faces(query_feature, model)

    top_confidence = float(confidences[order[0]])
    if top_confidence < model.config.recognition_threshold:
        return RecognitionResult((Candidate(UNKNOWN_SUBJECT_ID, top_confidence),))

    candidates: List[Candidate] = []
    seen = set()
    for idx in order:
        subject_id = int(model.subject_ids[idx])
        if subject_id in seen:
            continue
        seen.add(subject_id)
        candidates.append(Candidate(subject_id, float(confidences[idx])))
        if len(candidates) == results_no:
            break

    return RecognitionResult(tuple(candidates))
