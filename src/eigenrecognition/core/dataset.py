"""
Module for face dataset management.

This module provides the labeled face type, the training set providers
(manifest file or one directory per subject), the grayscale image loader and
a synthetic dataset generator for tests and demonstrations.
"""

import threading
import numpy as np
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from eigenrecognition.core.matrix import as_face_image
from eigenrecognition.errors import (
    ImageLoadError, InvalidParameterError, MissingFileError, TrainingCancelledError
)
from eigenrecognition.utils.log import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class SourceKind(Enum):
    """Where training faces come from."""
    MANIFEST_FILE = "manifest"
    DIRECTORY = "directory"

    @classmethod
    def parse(cls, value) -> 'SourceKind':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise InvalidParameterError(f"Unrecognized training source kind {value!r}. Use 'manifest' or 'directory'.")


@dataclass(frozen=True)
class LabeledFace:
    """
    A face image with the subject it belongs to.

    Attributes:
        subject_id: Positive subject identifier (0 means unknown)
        image: Pixel matrix of shape (height, width)
        source: Where the image came from, if it was loaded from disk
    """
    subject_id: int
    image: np.ndarray
    source: Optional[str] = None

    @property
    def image_shape(self) -> Tuple[int, int]:
        return tuple(np.shape(self.image))


class ManifestEntry(NamedTuple):
    """One '<subjectID> <imagePath>' line of a manifest."""
    subject_id: int
    image_path: Path
    line_no: int


def load_face_image(image_path: PathLike) -> np.ndarray:
    """
    Load a face image as a grayscale float array scaled to [0, 1].

    Args:
        image_path: Path to the image file

    Returns:
        np.ndarray: Image of shape (height, width)

    Raises:
        MissingFileError: If the file does not exist
        ImageLoadError: If the file cannot be decoded
    """
    path = Path(image_path)
    if not path.is_file():
        raise MissingFileError(f"Image not found: {path}")
    try:
        with Image.open(path) as img:
            img_array = np.array(img.convert('L'), dtype=np.float64) / 255.0
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Cannot decode image {path}: {e}") from e
    return img_array


def read_manifest(manifest_path: PathLike) -> List[ManifestEntry]:
    """
    Parse a manifest file.

    Each non-empty line holds '<subjectID> <imagePath>'. Lines starting with '#'
    are ignored. Relative image paths are resolved against the manifest's directory.

    Args:
        manifest_path: Path to the manifest

    Returns:
        List[ManifestEntry]: Entries in file order

    Raises:
        MissingFileError: If the manifest does not exist
        InvalidParameterError: If a line is malformed
    """
    path = Path(manifest_path)
    if not path.is_file():
        raise MissingFileError(f"Manifest not found: {path}")

    entries = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            parts = line.split(None, 1)
            if len(parts) != 2:
                raise InvalidParameterError(f"{path}:{line_no}: expected '<subjectID> <imagePath>'")
            try:
                subject_id = int(parts[0])
            except ValueError:
                raise InvalidParameterError(f"{path}:{line_no}: subject ID {parts[0]!r} is not an integer") from None

            image_path = Path(parts[1].strip())
            if not image_path.is_absolute():
                image_path = path.parent / image_path
            entries.append(ManifestEntry(subject_id, image_path, line_no))

    return entries


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TrainingCancelledError("Loading of training images cancelled")


def load_manifest(manifest_path: PathLike, cancel_event: Optional[threading.Event] = None,
                  progress_callback: Optional[Callable] = None) -> List[LabeledFace]:
    """
    Load every face listed in a manifest.

    Args:
        manifest_path: Path to the manifest
        cancel_event: When set, loading stops with TrainingCancelledError
        progress_callback: Callback function for progress

    Returns:
        List[LabeledFace]: Faces in manifest order
    """
    entries = read_manifest(manifest_path)
    faces = []
    for i, entry in enumerate(entries):
        _check_cancelled(cancel_event)
        faces.append(LabeledFace(entry.subject_id, load_face_image(entry.image_path), str(entry.image_path)))

        if progress_callback and i % max(1, len(entries) // 10) == 0:
            progress_callback(100 * (i + 1) / len(entries), f"Loaded image {i + 1}/{len(entries)}")

    logger.debug("Loaded %d faces from manifest %s", len(faces), manifest_path)
    return faces


def load_directory(directory: PathLike, image_extension: str,
                   cancel_event: Optional[threading.Event] = None,
                   progress_callback: Optional[Callable] = None) -> List[LabeledFace]:
    """
    Load faces from a directory with one sub-directory per subject.

    Sub-directory names are the integer subject IDs; every file with the given
    extension inside one of them is a face of that subject. Subjects and files
    are visited in sorted order.

    Args:
        directory: Root directory of the subjects database
        image_extension: Extension of face images, with or without the leading dot
        cancel_event: When set, loading stops with TrainingCancelledError
        progress_callback: Callback function for progress

    Returns:
        List[LabeledFace]: Loaded faces
    """
    root = Path(directory)
    if not root.is_dir():
        raise MissingFileError(f"Training directory not found: {root}")

    suffix = "." + image_extension.lstrip(".").lower()

    subjects = []
    for subject_dir in (p for p in root.iterdir() if p.is_dir()):
        try:
            subject_id = int(subject_dir.name)
        except ValueError:
            logger.warning("Skipping %s: directory name is not a subject ID", subject_dir)
            continue
        subjects.append((subject_id, subject_dir))

    subjects.sort(key=lambda item: item[0])

    faces = []
    for i, (subject_id, subject_dir) in enumerate(subjects):
        image_files = sorted(p for p in subject_dir.iterdir() if p.is_file() and p.suffix.lower() == suffix)
        for image_file in image_files:
            _check_cancelled(cancel_event)
            faces.append(LabeledFace(subject_id, load_face_image(image_file), str(image_file)))

        if progress_callback:
            progress_callback(100 * (i + 1) / len(subjects), f"Loaded subject {i + 1}/{len(subjects)}")

    logger.debug("Loaded %d faces of %d subjects from %s", len(faces), len(subjects), root)
    return faces


def load_training_set(source_kind, source_path: PathLike, image_extension: str,
                      cancel_event: Optional[threading.Event] = None,
                      progress_callback: Optional[Callable] = None) -> List[LabeledFace]:
    """Load a training set from a manifest file or a subjects directory."""
    kind = SourceKind.parse(source_kind)
    if kind is SourceKind.MANIFEST_FILE:
        return load_manifest(source_path, cancel_event, progress_callback)
    return load_directory(source_path, image_extension, cancel_event, progress_callback)


def create_synthetic_dataset(n_subjects: int = 3, n_images_per_subject: int = 4,
                             n_probes_per_subject: int = 1, image_shape: Tuple[int, int] = (64, 64),
                             noise: float = 0.05, seed: int = 42) -> Tuple[List[LabeledFace], List[LabeledFace]]:
    """
    Create a synthetic dataset for testing.

    Every subject gets a random base image; each of its faces is the base plus
    Gaussian noise, clipped to [0, 1].

    Args:
        n_subjects: Number of subjects (IDs 1..n_subjects)
        n_images_per_subject: Training images per subject
        n_probes_per_subject: Held-out images per subject
        image_shape: Image shape (height, width)
        noise: Standard deviation of the per-image noise
        seed: Random seed, for reproducibility

    Returns:
        Tuple[List[LabeledFace], List[LabeledFace]]: Training faces and held-out probes
    """
    rng = np.random.default_rng(seed)
    training = []
    probes = []

    for subject_id in range(1, n_subjects + 1):
        base = rng.random(image_shape)
        for j in range(n_images_per_subject + n_probes_per_subject):
            img = np.clip(base + noise * rng.standard_normal(image_shape), 0.0, 1.0)
            face = LabeledFace(subject_id, as_face_image(img), f"synthetic:{subject_id}:{j}")
            if j < n_images_per_subject:
                training.append(face)
            else:
                probes.append(face)

    return training, probes
