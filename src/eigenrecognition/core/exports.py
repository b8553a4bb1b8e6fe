"""
Debug image exports: the average face and a tiled composite of the eigenfaces.

These images are for human inspection only; nothing reads them back.
"""

import math
import cv2
import numpy as np
from pathlib import Path
from typing import Tuple, Union

from eigenrecognition import config
from eigenrecognition.core.model import Model
from eigenrecognition.errors import FileWriteError
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def to_uint8_image(image: np.ndarray) -> np.ndarray:
    """Min-max stretch a float image to 8-bit grayscale."""
    arr = np.array(image, dtype=np.float32)
    return cv2.normalize(arr, None, 0, 255, cv2.NORM_MINMAX, dtype=cv2.CV_8U)


def eigenfaces_mosaic(model: Model, columns: int = config.EIGENFACES_GRID_COLUMNS) -> np.ndarray:
    """
    Tile every eigenface, each stretched to 8-bit on its own, into one image.

    Args:
        model: Trained or loaded model
        columns: Maximum number of tiles per row

    Returns:
        np.ndarray: 8-bit image of shape (rows * height, columns * width)
    """
    height, width = model.image_shape
    n_faces = model.eigen_vectors_no
    n_columns = max(1, min(columns, n_faces))
    n_rows = math.ceil(n_faces / n_columns)

    mosaic = np.zeros((n_rows * height, n_columns * width), dtype=np.uint8)
    for i, direction in enumerate(model.principal_directions):
        row, col = divmod(i, n_columns)
        tile = to_uint8_image(direction.reshape(height, width))
        mosaic[row * height:(row + 1) * height, col * width:(col + 1) * width] = tile
    return mosaic


def save_debug_images(model: Model, output_dir: PathLike = ".") -> Tuple[Path, Path]:
    """
    Write the average face and the eigenfaces composite as 8-bit images.

    Args:
        model: Trained or loaded model
        output_dir: Directory for the two images

    Returns:
        Tuple[Path, Path]: Paths of the average face and the eigenfaces composite

    Raises:
        FileWriteError: If the directory or an image cannot be written
    """
    out = Path(output_dir)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteError(f"Cannot create debug image directory {out}: {e}") from e

    average_path = out / config.AVERAGE_IMAGE_FILE
    eigenfaces_path = out / config.EIGENFACES_IMAGE_FILE

    if not cv2.imwrite(str(average_path), to_uint8_image(model.average_face)):
        raise FileWriteError(f"Could not write {average_path}")
    if not cv2.imwrite(str(eigenfaces_path), eigenfaces_mosaic(model)):
        raise FileWriteError(f"Could not write {eigenfaces_path}")

    logger.info("Saved average face to %s and %d eigenfaces to %s",
                average_path, model.eigen_vectors_no, eigenfaces_path)
    return average_path, eigenfaces_path
