"""
Numeric matrix utilities for the eigenface pipeline.

Face images are 2D arrays of shape (height, width). The rest of the pipeline
works on flattened row vectors, so this module converts between the two
representations and enforces that every image shares one shape.
"""

import numpy as np
from typing import Iterable, Optional, Tuple

from eigenrecognition.errors import DimensionMismatchError

FLOAT_DTYPE = np.float64


def as_face_image(image) -> np.ndarray:
    """
    Convert an image to a 2D float array.

    Args:
        image: Array-like pixel matrix of shape (height, width)

    Returns:
        np.ndarray: Float64 image with the same shape

    Raises:
        DimensionMismatchError: If the image is not a non-empty 2D matrix
    """
    arr = np.asarray(image, dtype=FLOAT_DTYPE)
    if arr.ndim != 2 or arr.size == 0:
        raise DimensionMismatchError(
            f"Face image must be a non-empty 2D array (height, width), not shape {arr.shape}")
    return arr


def flatten(image: np.ndarray) -> np.ndarray:
    """Flatten an image to a 1D row vector (row-major)."""
    return np.asarray(image, dtype=FLOAT_DTYPE).reshape(-1)


def check_image_shape(image: np.ndarray, expected_shape: Tuple[int, int]) -> np.ndarray:
    """
    Verify that an image has the expected (height, width).

    Returns:
        np.ndarray: The image as a float64 2D array

    Raises:
        DimensionMismatchError: If the shapes differ
    """
    arr = as_face_image(image)
    if tuple(arr.shape) != tuple(expected_shape):
        raise DimensionMismatchError(
            f"Image has shape {tuple(arr.shape)} but the model expects {tuple(expected_shape)}")
    return arr


def stack_faces(images: Iterable,
                expected_shape: Optional[Tuple[int, int]] = None) -> Tuple[np.ndarray, Tuple[int, int]]:
    """
    Stack face images into a (n_images, n_pixels) matrix.

    Args:
        images: Face images, all with the same shape
        expected_shape: Required shape; defaults to the shape of the first image

    Returns:
        Tuple[np.ndarray, Tuple[int, int]]: The data matrix and the common image shape

    Raises:
        DimensionMismatchError: If an image has a different shape
    """
    rows = []
    shape = tuple(expected_shape) if expected_shape is not None else None
    for i, image in enumerate(images):
        arr = as_face_image(image)
        if shape is None:
            shape = tuple(arr.shape)
        elif tuple(arr.shape) != shape:
            raise DimensionMismatchError(
                f"Image {i} has shape {tuple(arr.shape)}, expected {shape}")
        rows.append(flatten(arr))

    if not rows:
        return np.empty((0, 0), dtype=FLOAT_DTYPE), shape if shape is not None else (0, 0)

    return np.vstack(rows), shape


def mean_face(data: np.ndarray) -> np.ndarray:
    """Per-pixel mean of a (n_images, n_pixels) matrix."""
    return np.mean(np.asarray(data, dtype=FLOAT_DTYPE), axis=0)


def l2_normalize_rows(matrix: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """L2-normalise each row; rows with norm below eps are left unchanged."""
    arr = np.asarray(matrix, dtype=FLOAT_DTYPE)
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    norms = np.where(norms < eps, 1.0, norms)
    return arr / norms


def read_only(array, dtype=FLOAT_DTYPE) -> np.ndarray:
    """Return a private copy of ``array`` that cannot be written to."""
    arr = np.array(array, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr
