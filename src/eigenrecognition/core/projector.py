"""
Projection of face images into the eigenface subspace.
"""

import threading
import numpy as np
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence, Union

from eigenrecognition import config
from eigenrecognition.core.matrix import check_image_shape, flatten
from eigenrecognition.core.model import Model, Subspace
from eigenrecognition.errors import TrainingCancelledError


def project(image: np.ndarray, model: Union[Model, Subspace]) -> np.ndarray:
    """
    Project one face image into the model's subspace.

    Args:
        image: Face image of shape model.image_shape
        model: Trained or loaded model

    Returns:
        np.ndarray: Feature vector of length model.eigen_vectors_no

    Raises:
        DimensionMismatchError: If the image shape differs from the model's
    """
    arr = check_image_shape(image, model.image_shape)
    centered = flatten(arr) - flatten(model.average_face)
    return model.principal_directions @ centered


def project_many(images: Sequence[np.ndarray], model: Union[Model, Subspace], max_workers: Optional[int] = None,
                 cancel_event: Optional[threading.Event] = None,
                 progress_callback: Optional[Callable] = None) -> np.ndarray:
    """
    Project several images, distributing them over a thread pool.

    Args:
        images: Face images of shape model.image_shape
        model: Trained or loaded model
        max_workers: Number of worker threads (defaults to the CPU count)
        cancel_event: When set, remaining images are not projected
        progress_callback: Callback function for progress reporting

    Returns:
        np.ndarray: Matrix of shape (len(images), model.eigen_vectors_no), in input order

    Raises:
        DimensionMismatchError: If an image shape differs from the model's
        TrainingCancelledError: If cancel_event was set before all images were done
    """
    n_images = len(images)
    features = np.zeros((n_images, model.eigen_vectors_no), dtype=np.float64)
    if n_images == 0:
        return features

    def project_one(image):
        if cancel_event is not None and cancel_event.is_set():
            raise TrainingCancelledError("Projection cancelled")
        return project(image, model)

    workers = max(1, min(max_workers or config.MAX_WORKERS, n_images))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {}

        for i, image in enumerate(images):
            futures[executor.submit(project_one, image)] = i

        try:
            for done, future in enumerate(as_completed(futures)):
                idx = futures[future]
                features[idx] = future.result()

                if progress_callback and done % max(1, n_images // 10) == 0:
                    progress_callback(100 * (done + 1) / n_images, f"Projected image {done + 1}/{n_images}")
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return features
