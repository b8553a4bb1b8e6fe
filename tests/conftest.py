from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image

from eigenrecognition.core.dataset import create_synthetic_dataset
from eigenrecognition.core.model import Model, ModelConfig
from eigenrecognition.core.trainer import train


def write_face(path: Path, image: np.ndarray) -> Path:
    """Write a [0, 1] float image as an 8-bit grayscale file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pixels = np.round(np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)
    Image.fromarray(pixels).save(path)
    return path


@pytest.fixture
def face_writer():
    return write_face


@pytest.fixture
def synthetic_faces():
    # 3 subjects x 4 training images + 1 held-out probe each, 64x64
    return create_synthetic_dataset(n_subjects=3, n_images_per_subject=4, n_probes_per_subject=1,
                                    image_shape=(64, 64), noise=0.05, seed=7)


@pytest.fixture
def training_faces(synthetic_faces):
    return synthetic_faces[0]


@pytest.fixture
def probe_faces(synthetic_faces):
    return synthetic_faces[1]


@pytest.fixture
def euclidean_model(training_faces) -> Model:
    return train(training_faces, distance_type="euclidean", recognition_threshold=0.6, eigen_vectors_no=5)


@pytest.fixture
def face_files(tmp_path, training_faces, probe_faces):
    """Synthetic faces on disk: a subjects directory plus train/test manifests."""
    faces_dir = tmp_path / "faces"
    train_lines = []
    for i, face in enumerate(training_faces):
        rel = Path("faces") / str(face.subject_id) / f"{i:02d}.png"
        write_face(tmp_path / rel, face.image)
        train_lines.append(f"{face.subject_id} {rel.as_posix()}")

    test_lines = []
    for face in probe_faces:
        rel = Path("probes") / f"{face.subject_id}.png"
        write_face(tmp_path / rel, face.image)
        test_lines.append(f"{face.subject_id} {rel.as_posix()}")

    train_manifest = tmp_path / "train.txt"
    train_manifest.write_text("\n".join(train_lines) + "\n", encoding="utf-8")
    test_manifest = tmp_path / "test.txt"
    test_manifest.write_text("\n".join(test_lines) + "\n", encoding="utf-8")

    return SimpleNamespace(root=tmp_path, faces_dir=faces_dir,
                           train_manifest=train_manifest, test_manifest=test_manifest)


@pytest.fixture
def make_feature_model():
    """Build a model directly in feature space (identity eigenfaces over a 1 x K image)."""

    def factory(rows, subject_ids, distance_type="euclidean", threshold=0.5, variances=None) -> Model:
        rows = np.asarray(rows, dtype=np.float64)
        if rows.ndim == 1:
            rows = rows[:, None]
        k = rows.shape[1]
        if variances is None:
            variances = np.var(rows, axis=0)
        return Model(
            average_face=np.zeros((1, k)),
            principal_directions=np.eye(k),
            variances=np.asarray(variances, dtype=np.float64),
            projected_training_vectors=rows,
            subject_ids=np.asarray(subject_ids, dtype=np.int64),
            config=ModelConfig(distance_type, threshold, (1, k)),
        )

    return factory
