import numpy as np
import pytest

from eigenrecognition.core.matrix import (
    as_face_image, check_image_shape, flatten, l2_normalize_rows, mean_face, read_only, stack_faces
)
from eigenrecognition.errors import DimensionMismatchError


def test_as_face_image_converts_to_float64():
    img = as_face_image(np.arange(6, dtype=np.uint8).reshape(2, 3))
    assert img.dtype == np.float64
    assert img.shape == (2, 3)


@pytest.mark.parametrize("bad", [np.zeros(5), np.zeros((2, 2, 3)), np.zeros((0, 4))])
def test_as_face_image_rejects_non_matrices(bad):
    with pytest.raises(DimensionMismatchError):
        as_face_image(bad)


def test_flatten_is_row_major():
    img = np.array([[1, 2], [3, 4]])
    assert flatten(img).tolist() == [1.0, 2.0, 3.0, 4.0]


def test_check_image_shape():
    assert check_image_shape(np.zeros((4, 3)), (4, 3)).shape == (4, 3)
    with pytest.raises(DimensionMismatchError):
        check_image_shape(np.zeros((3, 4)), (4, 3))


def test_stack_faces_builds_data_matrix():
    data, shape = stack_faces([np.ones((2, 2)), np.zeros((2, 2)), np.full((2, 2), 2.0)])
    assert shape == (2, 2)
    assert data.shape == (3, 4)
    np.testing.assert_allclose(mean_face(data), np.ones(4))


def test_stack_faces_rejects_mixed_shapes():
    with pytest.raises(DimensionMismatchError):
        stack_faces([np.zeros((2, 2)), np.zeros((2, 3))])


def test_stack_faces_with_expected_shape():
    with pytest.raises(DimensionMismatchError):
        stack_faces([np.zeros((2, 2))], expected_shape=(3, 3))


def test_l2_normalize_rows_leaves_zero_rows():
    out = l2_normalize_rows(np.array([[3.0, 4.0], [0.0, 0.0]]))
    np.testing.assert_allclose(out, [[0.6, 0.8], [0.0, 0.0]])


def test_read_only_copies_and_locks():
    source = np.array([1.0, 2.0])
    locked = read_only(source)
    source[0] = 10.0
    assert locked[0] == 1.0
    with pytest.raises(ValueError):
        locked[0] = 5.0
