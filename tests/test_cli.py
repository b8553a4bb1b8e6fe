import json

import pytest

from eigenrecognition.cli import build_parser, main


@pytest.fixture
def model_path(tmp_path, face_files):
    path = tmp_path / "model.joblib"
    code = main(["--model", str(path), "train", str(face_files.train_manifest),
                 "--distance", "euclidean", "--eigenfaces", "5"])
    assert code == 0
    return path


def test_train(tmp_path, face_files, capsys):
    path = tmp_path / "trainingData.joblib"
    code = main(["--model", str(path), "train", str(face_files.train_manifest), "--eigenfaces", "4"])
    assert code == 0
    assert path.is_file()
    assert "Trained on 12 faces, 4 eigenfaces" in capsys.readouterr().out


def test_train_from_directory_with_debug_images(tmp_path, face_files, capsys):
    path = tmp_path / "out" / "model.joblib"
    code = main(["--model", str(path), "train", str(face_files.faces_dir), "--source-kind", "directory",
                 "--extension", "png", "--export-debug"])
    assert code == 0
    assert path.is_file()
    assert (tmp_path / "out" / "outEigenfacesImage.pgm").is_file()


def test_classify(model_path, face_files, capsys):
    capsys.readouterr()
    probes = [str(face_files.root / "probes" / f"{i}.png") for i in (1, 2, 3)]
    code = main(["--model", str(model_path), "classify", *probes, "--results", "2"])
    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 3
    assert lines[1].startswith(probes[1] + ": 2 (")


def test_evaluate_json(model_path, face_files, capsys):
    capsys.readouterr()
    code = main(["--model", str(model_path), "evaluate", str(face_files.test_manifest), "--json"])
    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report['performance']['accuracy'] == 1.0
    assert report['performance']['attempted'] == 3


def test_evaluate_summary(model_path, face_files, capsys):
    capsys.readouterr()
    assert main(["--model", str(model_path), "evaluate", str(face_files.test_manifest)]) == 0
    assert "Accuracy: 100.00% (3/3)" in capsys.readouterr().out


def test_missing_model_is_an_error(tmp_path, capsys):
    code = main(["--model", str(tmp_path / "absent.joblib"), "evaluate", str(tmp_path / "test.txt")])
    assert code == 1
    assert "Error:" in capsys.readouterr().err


def test_no_command():
    assert main([]) == 2


def test_invalid_distance_choice():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["train", "list.txt", "--distance", "cosine"])


def test_unwritable_model_path_is_an_error(tmp_path, face_files, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    code = main(["--model", str(blocker / "model.joblib"), "train", str(face_files.train_manifest)])
    assert code == 1
    assert "Error: Cannot write model" in capsys.readouterr().err
