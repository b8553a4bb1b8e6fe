"""
Eigenfaces training.

The subspace is computed with the snapshot method: instead of decomposing the
(n_pixels x n_pixels) covariance matrix, the (n_faces x n_faces) Gram matrix of
the mean-centred images is decomposed and its eigenvectors are lifted back to
pixel space. This is O(N^2 D) instead of O(D^3).
"""

import threading
import time
import numpy as np
from typing import Callable, List, Optional, Sequence

from eigenrecognition import config
from eigenrecognition.core.dataset import LabeledFace
from eigenrecognition.core.distance import DistanceType
from eigenrecognition.core.matrix import as_face_image, l2_normalize_rows, mean_face, stack_faces
from eigenrecognition.core.model import UNKNOWN_SUBJECT_ID, Model, ModelConfig, Subspace, check_threshold
from eigenrecognition.core.projector import project_many
from eigenrecognition.errors import (
    DimensionMismatchError, InsufficientTrainingDataError, InvalidParameterError, TrainingCancelledError
)
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)

# Eigenvalues below this fraction of the largest one are treated as zero
RELATIVE_EIGENVALUE_TOLERANCE = 1e-10


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TrainingCancelledError("Training cancelled")


def _check_subject_ids(faces: Sequence[LabeledFace]) -> np.ndarray:
    ids = []
    for i, face in enumerate(faces):
        subject_id = face.subject_id
        if isinstance(subject_id, bool) or not isinstance(subject_id, (int, np.integer)):
            raise InvalidParameterError(f"Training face {i} has non-integer subject ID {subject_id!r}")
        if subject_id <= UNKNOWN_SUBJECT_ID:
            raise InvalidParameterError(
                f"Training face {i} has subject ID {subject_id}; IDs must be positive (0 means unknown)")
        ids.append(int(subject_id))
    return np.array(ids, dtype=np.int64)


def _check_requested_components(eigen_vectors_no: Optional[int], n_faces: int) -> int:
    if eigen_vectors_no is None:
        return n_faces - 1
    if isinstance(eigen_vectors_no, bool) or not isinstance(eigen_vectors_no, (int, np.integer)) \
            or eigen_vectors_no < 1:
        raise InvalidParameterError(f"eigen_vectors_no must be a positive integer, not {eigen_vectors_no!r}")
    return min(int(eigen_vectors_no), n_faces - 1)


def compute_subspace(data: np.ndarray, n_components: int):
    """
    Principal directions of a data matrix via its Gram matrix.

    Args:
        data: Matrix of shape (n_faces, n_pixels)
        n_components: Maximum number of directions to keep

    Returns:
        Tuple[np.ndarray, np.ndarray, np.ndarray]: The mean row, the unit directions
            of shape (k, n_pixels) and their variances of shape (k,), ordered by
            descending variance. k <= n_components; directions with zero variance
            are dropped.
    """
    n_faces = data.shape[0]
    average = mean_face(data)
    centered = data - average

    gram = centered @ centered.T
    eigenvalues, eigenvectors = np.linalg.eigh(gram)

    # Descending, ties keep index order
    order = np.argsort(-eigenvalues, kind='stable')
    eigenvalues = eigenvalues[order]
    eigenvectors = eigenvectors[:, order]

    largest = float(eigenvalues[0]) if eigenvalues.size else 0.0
    if largest <= 0.0:
        return average, np.empty((0, data.shape[1])), np.empty(0)

    n_positive = int(np.sum(eigenvalues > largest * RELATIVE_EIGENVALUE_TOLERANCE))
    k = min(n_components, n_positive)

    directions = l2_normalize_rows((centered.T @ eigenvectors[:, :k]).T)
    variances = eigenvalues[:k] / n_faces
    return average, directions, variances


def train(training_set: Sequence[LabeledFace],
          distance_type=config.DEFAULT_DISTANCE_TYPE,
          recognition_threshold: float = config.DEFAULT_RECOGNITION_THRESHOLD,
          eigen_vectors_no: Optional[int] = None,
          cancel_event: Optional[threading.Event] = None,
          max_workers: Optional[int] = None,
          progress_callback: Optional[Callable] = None) -> Model:
    """
    Build an eigenface model from labeled faces.

    Args:
        training_set: Labeled faces, all with the same image shape
        distance_type: Metric the model will match with
        recognition_threshold: Minimum confidence to report a subject
        eigen_vectors_no: Number of eigenfaces to keep (capped at trainFacesNo - 1)
        cancel_event: Checked between per-image steps; when set, training stops
        max_workers: Threads used to project the training images
        progress_callback: Callback function for progress reporting

    Returns:
        Model: The new model

    Raises:
        InsufficientTrainingDataError: With fewer than 2 faces, or if the faces do not vary
        DimensionMismatchError: If image shapes differ
        InvalidParameterError: For an invalid metric, threshold, component count or subject ID
        TrainingCancelledError: If cancel_event was set during training
    """
    start_time = time.time()

    faces: List[LabeledFace] = list(training_set)
    n_faces = len(faces)
    if n_faces < 2:
        raise InsufficientTrainingDataError(f"Need at least 2 training faces, got {n_faces}")

    distance_type = DistanceType.parse(distance_type)
    threshold = check_threshold(recognition_threshold)
    requested = _check_requested_components(eigen_vectors_no, n_faces)
    subject_ids = _check_subject_ids(faces)

    if progress_callback:
        progress_callback(5, f"Stacking {n_faces} training images...")

    images = []
    for face in faces:
        _check_cancelled(cancel_event)
        images.append(as_face_image(face.image))

    data, image_shape = stack_faces(images)

    _check_cancelled(cancel_event)
    if progress_callback:
        progress_callback(30, "Decomposing Gram matrix...")

    average, directions, variances = compute_subspace(data, requested)
    if directions.shape[0] == 0:
        raise InsufficientTrainingDataError("Training faces are identical; no principal direction can be computed")

    logger.debug("Kept %d of %d requested eigenfaces (largest variance %.6g)",
                 directions.shape[0], requested, variances[0])

    _check_cancelled(cancel_event)
    if progress_callback:
        progress_callback(60, "Projecting training images...")

    subspace = Subspace(average.reshape(image_shape), directions, image_shape)

    def projection_progress(percent, message):
        progress_callback(60 + 0.35 * percent, message)

    projected = project_many(images, subspace, max_workers=max_workers, cancel_event=cancel_event,
                             progress_callback=projection_progress if progress_callback else None)

    _check_cancelled(cancel_event)

    model = Model(
        average_face=average.reshape(image_shape),
        principal_directions=directions,
        variances=variances,
        projected_training_vectors=projected,
        subject_ids=subject_ids,
        config=ModelConfig(distance_type, threshold, image_shape),
    )

    execution_time = time.time() - start_time
    logger.info("Trained model on %d faces of %d subjects: %d eigenfaces, %s distance (%.2f s)",
                model.train_faces_no, len(np.unique(subject_ids)), model.eigen_vectors_no,
                distance_type.value, execution_time)

    if progress_callback:
        progress_callback(100, f"Training completed in {execution_time:.2f} seconds")

    return model
