"""
Saving and loading eigenface models.

A model is stored as a joblib file holding one dict of NumPy arrays: every
field under its own name, together with the declared counts and a schema
version, which are cross-checked on load. Only load model files from trusted
sources; joblib files are pickles.
"""

import os
import tempfile
import joblib
import numpy as np
from pathlib import Path
from typing import Any, Dict, Union

from eigenrecognition import config
from eigenrecognition.core.distance import DistanceType
from eigenrecognition.core.model import Model, ModelConfig
from eigenrecognition.errors import CorruptModelError, FileWriteError, InvalidParameterError, MissingFileError
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

# zlib level passed to joblib.dump
COMPRESSION_LEVEL = 3

MODEL_FIELDS = (
    'schema_version',
    'train_faces_no',
    'eigen_vectors_no',
    'distance_type',
    'recognition_threshold',
    'image_size',
    'average_face',
    'principal_directions',
    'variances',
    'projected_training_vectors',
    'subject_ids',
)


def model_to_arrays(model: Model) -> Dict[str, np.ndarray]:
    """Convert a model to the named arrays written to disk."""
    height, width = model.image_shape
    return {
        'schema_version': np.array(config.MODEL_SCHEMA_VERSION, dtype=np.int64),
        'train_faces_no': np.array(model.train_faces_no, dtype=np.int64),
        'eigen_vectors_no': np.array(model.eigen_vectors_no, dtype=np.int64),
        'distance_type': np.array(model.config.distance_type.value),
        'recognition_threshold': np.array(model.config.recognition_threshold, dtype=np.float64),
        'image_size': np.array([width, height], dtype=np.int64),
        'average_face': np.asarray(model.average_face, dtype=np.float64),
        'principal_directions': np.asarray(model.principal_directions, dtype=np.float64),
        'variances': np.asarray(model.variances, dtype=np.float64),
        'projected_training_vectors': np.asarray(model.projected_training_vectors, dtype=np.float64),
        'subject_ids': np.asarray(model.subject_ids, dtype=np.int64),
    }


def save_model(model: Model, path: PathLike) -> Path:
    """
    Write a model to disk.

    The file is written to a temporary file next to the destination and
    then moved into place, so readers never see a partially written model.

    Args:
        model: Model to save
        path: Destination file

    Returns:
        Path: The destination path

    Raises:
        FileWriteError: If the file cannot be written
    """
    destination = Path(path)
    arrays = model_to_arrays(model)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=destination.name + ".", suffix=".tmp",
                                        dir=str(destination.parent))
        os.close(fd)
        try:
            joblib.dump(arrays, tmp_name, compress=COMPRESSION_LEVEL)
            os.replace(tmp_name, destination)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
    except OSError as e:
        raise FileWriteError(f"Cannot write model to {destination}: {e}") from e

    logger.info("Saved model (%d faces, %d eigenfaces) to %s",
                model.train_faces_no, model.eigen_vectors_no, destination)
    return destination


def _scalar(arrays: Dict[str, np.ndarray], name: str, kind: str) -> Any:
    value = arrays[name]
    if not isinstance(value, np.ndarray) or value.shape != () or value.dtype.kind not in kind:
        raise CorruptModelError(
            f"Field '{name}' has unexpected type {getattr(value, 'dtype', type(value).__name__)} "
            f"/ shape {getattr(value, 'shape', None)}")
    return value.item()


def _array(arrays: Dict[str, np.ndarray], name: str, ndim: int, kind: str = 'f') -> np.ndarray:
    value = arrays[name]
    if not isinstance(value, np.ndarray) or value.ndim != ndim or value.dtype.kind not in kind:
        raise CorruptModelError(
            f"Field '{name}' has unexpected type {getattr(value, 'dtype', type(value).__name__)} "
            f"/ shape {getattr(value, 'shape', None)}")
    return value


def model_from_arrays(arrays: Dict[str, np.ndarray]) -> Model:
    """
    Rebuild a model from its stored arrays.

    Raises:
        CorruptModelError: If a field is missing, mistyped or inconsistent
    """
    missing = [name for name in MODEL_FIELDS if name not in arrays]
    if missing:
        raise CorruptModelError(f"Model file is missing fields: {', '.join(missing)}")

    version = _scalar(arrays, 'schema_version', 'iu')
    if version != config.MODEL_SCHEMA_VERSION:
        raise CorruptModelError(f"Unsupported model schema version {version}")

    train_faces_no = _scalar(arrays, 'train_faces_no', 'iu')
    eigen_vectors_no = _scalar(arrays, 'eigen_vectors_no', 'iu')
    distance_tag = _scalar(arrays, 'distance_type', 'U')
    threshold = _scalar(arrays, 'recognition_threshold', 'f')

    image_size = _array(arrays, 'image_size', 1, 'iu')
    if image_size.shape != (2,):
        raise CorruptModelError(f"Field 'image_size' must hold (width, height), not {image_size.tolist()}")
    width, height = int(image_size[0]), int(image_size[1])

    average_face = _array(arrays, 'average_face', 2)
    principal_directions = _array(arrays, 'principal_directions', 2)
    variances = _array(arrays, 'variances', 1)
    projected = _array(arrays, 'projected_training_vectors', 2)
    subject_ids = _array(arrays, 'subject_ids', 1, 'iu')

    if projected.shape != (train_faces_no, eigen_vectors_no):
        raise CorruptModelError(
            f"Projected training vectors have shape {projected.shape}, "
            f"declared ({train_faces_no}, {eigen_vectors_no})")
    if subject_ids.shape[0] != train_faces_no:
        raise CorruptModelError(f"{subject_ids.shape[0]} subject IDs for {train_faces_no} training faces")
    if principal_directions.shape[0] != eigen_vectors_no or variances.shape[0] != eigen_vectors_no:
        raise CorruptModelError(
            f"{principal_directions.shape[0]} directions and {variances.shape[0]} variances, "
            f"declared {eigen_vectors_no}")

    try:
        model_config = ModelConfig(DistanceType.parse(distance_tag), threshold, (height, width))
    except InvalidParameterError as e:
        raise CorruptModelError(f"Invalid model configuration: {e}") from e

    return Model(
        average_face=average_face,
        principal_directions=principal_directions,
        variances=variances,
        projected_training_vectors=projected,
        subject_ids=subject_ids,
        config=model_config,
    )


def load_model(path: PathLike) -> Model:
    """
    Read a model written by save_model.

    Args:
        path: Model file

    Returns:
        Model: The loaded model

    Raises:
        MissingFileError: If the file does not exist
        CorruptModelError: If the file is not a valid model
    """
    source = Path(path)
    if not source.is_file():
        raise MissingFileError(f"Model file not found: {source}")

    try:
        arrays = joblib.load(source)
    except Exception as e:
        raise CorruptModelError(f"Cannot read model file {source}: {e}") from e

    if not isinstance(arrays, dict):
        raise CorruptModelError(f"{source} does not hold a model (found {type(arrays).__name__})")

    model = model_from_arrays(arrays)
    logger.info("Loaded model (%d faces, %d eigenfaces) from %s",
                model.train_faces_no, model.eigen_vectors_no, source)
    return model
