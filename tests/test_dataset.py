import threading

import numpy as np
import pytest

from eigenrecognition.core.dataset import (
    SourceKind, create_synthetic_dataset, load_directory, load_face_image, load_manifest, load_training_set,
    read_manifest
)
from eigenrecognition.errors import (
    ImageLoadError, InvalidParameterError, MissingFileError, TrainingCancelledError
)


def test_source_kind_parsing():
    assert SourceKind.parse("manifest") is SourceKind.MANIFEST_FILE
    assert SourceKind.parse("DIRECTORY") is SourceKind.DIRECTORY
    assert SourceKind.parse(SourceKind.DIRECTORY) is SourceKind.DIRECTORY
    with pytest.raises(InvalidParameterError):
        SourceKind.parse("database")


def test_load_face_image_scales_to_unit_range(tmp_path, face_writer):
    image = np.linspace(0.0, 1.0, 12).reshape(3, 4)
    path = face_writer(tmp_path / "face.png", image)
    loaded = load_face_image(path)
    assert loaded.shape == (3, 4)
    assert loaded.dtype == np.float64
    np.testing.assert_allclose(loaded, image, atol=1 / 255)


def test_load_face_image_converts_color_to_grayscale(tmp_path):
    from PIL import Image

    path = tmp_path / "color.png"
    Image.new("RGB", (5, 2), (255, 255, 255)).save(path)
    loaded = load_face_image(path)
    assert loaded.shape == (2, 5)
    np.testing.assert_allclose(loaded, np.ones((2, 5)))


def test_load_face_image_errors(tmp_path):
    with pytest.raises(MissingFileError):
        load_face_image(tmp_path / "missing.pgm")
    garbage = tmp_path / "garbage.pgm"
    garbage.write_bytes(b"not an image")
    with pytest.raises(ImageLoadError):
        load_face_image(garbage)


def test_read_manifest(tmp_path):
    manifest = tmp_path / "list.txt"
    absolute = tmp_path / "abs.png"
    manifest.write_text(
        "# training faces\n"
        "\n"
        "1 faces/a.png\n"
        f"  2   {absolute}  \n"
        "3 dir with spaces/c.png\n",
        encoding="utf-8",
    )
    entries = read_manifest(manifest)
    assert [e.subject_id for e in entries] == [1, 2, 3]
    assert entries[0].image_path == tmp_path / "faces" / "a.png"
    assert entries[1].image_path == absolute
    assert entries[2].image_path == tmp_path / "dir with spaces" / "c.png"
    assert [e.line_no for e in entries] == [3, 4, 5]


@pytest.mark.parametrize("line", ["justonefield", "x faces/a.png"])
def test_malformed_manifest(tmp_path, line):
    manifest = tmp_path / "list.txt"
    manifest.write_text(line + "\n", encoding="utf-8")
    with pytest.raises(InvalidParameterError):
        read_manifest(manifest)


def test_missing_manifest(tmp_path):
    with pytest.raises(MissingFileError):
        read_manifest(tmp_path / "absent.txt")


def test_load_manifest(face_files, training_faces):
    faces = load_manifest(face_files.train_manifest)
    assert len(faces) == len(training_faces)
    assert [f.subject_id for f in faces] == [f.subject_id for f in training_faces]
    assert all(f.image_shape == (64, 64) for f in faces)
    assert faces[0].source.endswith("00.png")


def test_load_manifest_missing_image(tmp_path):
    manifest = tmp_path / "list.txt"
    manifest.write_text("1 nowhere.png\n", encoding="utf-8")
    with pytest.raises(MissingFileError):
        load_manifest(manifest)


def test_load_directory(face_files, training_faces, face_writer):
    (face_files.faces_dir / "notes").mkdir()
    face_writer(face_files.faces_dir / "1" / "extra.bmp", np.zeros((64, 64)))
    (face_files.faces_dir / "readme.txt").write_text("ignored")

    faces = load_directory(face_files.faces_dir, ".PNG")
    assert len(faces) == len(training_faces)
    assert sorted({f.subject_id for f in faces}) == [1, 2, 3]
    assert [f.subject_id for f in faces] == sorted(f.subject_id for f in faces)


def test_load_directory_orders_subjects_numerically(tmp_path, face_writer):
    for subject_id in (10, 2, 1):
        face_writer(tmp_path / str(subject_id) / "a.png", np.zeros((4, 4)))
    faces = load_directory(tmp_path, "png")
    assert [f.subject_id for f in faces] == [1, 2, 10]


def test_load_directory_missing(tmp_path):
    with pytest.raises(MissingFileError):
        load_directory(tmp_path / "absent", "png")


def test_load_training_set_dispatch(face_files):
    from_manifest = load_training_set("manifest", face_files.train_manifest, "png")
    from_directory = load_training_set(SourceKind.DIRECTORY, face_files.faces_dir, "png")
    assert len(from_manifest) == len(from_directory) == 12


def test_loading_cancelled(face_files):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(TrainingCancelledError):
        load_manifest(face_files.train_manifest, cancel_event=cancel)
    with pytest.raises(TrainingCancelledError):
        load_directory(face_files.faces_dir, "png", cancel_event=cancel)


def test_synthetic_dataset():
    training, probes = create_synthetic_dataset(n_subjects=4, n_images_per_subject=3, n_probes_per_subject=2,
                                                image_shape=(8, 6), seed=1)
    assert len(training) == 12
    assert len(probes) == 8
    assert {f.subject_id for f in training} == {1, 2, 3, 4}
    assert all(f.image_shape == (8, 6) for f in training + probes)
    assert all(f.image.min() >= 0.0 and f.image.max() <= 1.0 for f in training)

    again, _ = create_synthetic_dataset(n_subjects=4, n_images_per_subject=3, n_probes_per_subject=2,
                                        image_shape=(8, 6), seed=1)
    np.testing.assert_array_equal(training[5].image, again[5].image)
