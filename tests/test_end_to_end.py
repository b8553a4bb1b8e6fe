import numpy as np
import pytest

from eigenrecognition import EigenfaceRecognizer
from eigenrecognition.core.dataset import LabeledFace, create_synthetic_dataset
from eigenrecognition.errors import DimensionMismatchError, InsufficientTrainingDataError


def test_held_out_face_is_identified(tmp_path):
    training, probes = create_synthetic_dataset(n_subjects=3, n_images_per_subject=4, n_probes_per_subject=1,
                                                image_shape=(64, 64), noise=0.05, seed=42)
    recognizer = EigenfaceRecognizer(recognition_threshold=0.6, distance_type="euclidean",
                                     default_model_path=tmp_path / "trainingData.joblib", eigen_vectors_no=5)
    recognizer.train_faces(training)

    probe = probes[1]
    assert probe.subject_id == 2
    result = recognizer.classify(probe.image, results_no=3)

    assert len(result) == 3
    assert result.best.subject_id == 2
    assert result.best.confidence > 0.6
    assert sorted(c.subject_id for c in result) == [1, 2, 3]
    assert [c.confidence for c in result] == sorted((c.confidence for c in result), reverse=True)

    recognizer.save_model()
    reloaded = EigenfaceRecognizer(default_model_path=tmp_path / "trainingData.joblib")
    reloaded.load_model()
    again = reloaded.classify(probe.image, results_no=3)
    assert [c.subject_id for c in again] == [c.subject_id for c in result]
    np.testing.assert_allclose([c.confidence for c in again], [c.confidence for c in result], atol=1e-9)


def test_unusable_training_sets_are_rejected():
    recognizer = EigenfaceRecognizer(distance_type="euclidean")
    with pytest.raises(InsufficientTrainingDataError):
        recognizer.train_faces([LabeledFace(1, np.zeros((8, 8)))])
    with pytest.raises(DimensionMismatchError):
        recognizer.train_faces([LabeledFace(1, np.zeros((8, 8))), LabeledFace(2, np.ones((8, 9)))])
    assert not recognizer.is_ready
