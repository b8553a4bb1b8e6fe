import numpy as np

from eigenrecognition.core.dataset import LabeledFace
from eigenrecognition.core.evaluation import EvaluationReport, evaluate
from eigenrecognition.core.trainer import train


def test_held_out_faces_are_recognized(euclidean_model, probe_faces):
    report = evaluate(probe_faces, euclidean_model)
    assert report.attempted == 3
    assert report.correct == 3
    assert report.failed == 0
    assert report.accuracy == 1.0
    assert [item.predicted_subject_id for item in report.items] == [1, 2, 3]


def test_bad_items_are_skipped(tmp_path, euclidean_model, probe_faces):
    samples = list(probe_faces) + [
        LabeledFace(2, np.zeros((32, 32))),
        (3, tmp_path / "missing.png"),
    ]
    report = evaluate(samples, euclidean_model)

    assert report.attempted == 3
    assert report.failed == 2
    assert report.accuracy == 1.0
    assert "DimensionMismatchError" in report.items[3].error
    assert "MissingFileError" in report.items[4].error
    assert report.items[4].source == str(tmp_path / "missing.png")


def test_rejections_count_as_wrong(training_faces, probe_faces):
    model = train(training_faces, distance_type="euclidean", recognition_threshold=1.0, eigen_vectors_no=5)
    report = evaluate(probe_faces, model)
    assert report.rejected == 3
    assert report.correct == 0
    assert report.accuracy == 0.0
    assert all(item.predicted_subject_id == 0 for item in report.items)


def test_tuple_samples_and_loader(euclidean_model, probe_faces):
    images = {f"face{face.subject_id}": face.image for face in probe_faces}
    samples = [(face.subject_id, f"face{face.subject_id}") for face in probe_faces]
    report = evaluate(samples, euclidean_model, image_loader=images.__getitem__)
    assert report.accuracy == 1.0


def test_model_is_not_modified(euclidean_model, probe_faces):
    before = euclidean_model.projected_training_vectors.copy()
    evaluate(probe_faces, euclidean_model)
    np.testing.assert_array_equal(euclidean_model.projected_training_vectors, before)


def test_confusion_matrix_and_dict(euclidean_model, probe_faces):
    report = evaluate(probe_faces, euclidean_model)
    assert report.labels() == [1, 2, 3]
    np.testing.assert_array_equal(report.confusion_matrix(), np.eye(3, dtype=int))

    data = report.to_dict()
    assert data['performance'] == {'accuracy': 1.0, 'attempted': 3, 'correct': 3, 'failed': 0, 'rejected': 0}
    assert data['confusion_matrix'] == np.eye(3, dtype=int).tolist()
    assert len(data['items']) == 3


def test_empty_report():
    report = EvaluationReport()
    assert report.accuracy == 0.0
    assert report.confusion_matrix().shape == (0, 0)


def test_progress_is_reported(euclidean_model, probe_faces):
    updates = []
    evaluate(probe_faces, euclidean_model, progress_callback=lambda p, m: updates.append(p))
    assert updates[0] == 0
    assert updates[-1] == 100


def test_malformed_samples_are_skipped(euclidean_model, probe_faces):
    image = probe_faces[0].image
    samples = list(probe_faces) + [("x", image), (1,), 7]
    report = evaluate(samples, euclidean_model)

    assert report.attempted == 3
    assert report.correct == 3
    assert report.failed == 3
    assert "ValueError" in report.items[3].error
    assert "IndexError" in report.items[4].error
    assert "TypeError" in report.items[5].error
    assert report.items[3].true_subject_id is None
    assert report.labels() == [1, 2, 3]
    assert report.to_dict()['items'][3]['true_subject_id'] is None
