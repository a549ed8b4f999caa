from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

from facemarks.errors import LandmarkShapeError
from facemarks.landmarks.dlib68_mapping import MESH_LANDMARK_COUNT, MESH_TO_IBUG68, mesh_to_ibug68
from facemarks.landmarks.mediapipe_face_landmarker import landmarks_from_result
from facemarks.landmarks.provider_base import LandmarkVector, as_landmark_vector


def test_vector_accepts_exactly_136_values() -> None:
    vector = LandmarkVector(np.linspace(0.0, 1.0, 136))
    assert len(vector) == 136
    assert vector.points().shape == (68, 2)
    assert vector.points()[1, 0] == pytest.approx(vector.values[2])


@pytest.mark.parametrize("length", [0, 135, 137, 68])
def test_vector_rejects_other_lengths(length: int) -> None:
    with pytest.raises(LandmarkShapeError) as exc_info:
        LandmarkVector(np.zeros((length,)))
    assert exc_info.value.actual == length
    assert exc_info.value.expected == 136


def test_vector_is_read_only() -> None:
    vector = LandmarkVector.zeros()
    with pytest.raises(ValueError):
        vector.values[0] = 1.0


def test_from_points_requires_68_pairs() -> None:
    vector = LandmarkVector.from_points(np.ones((68, 2)) * 0.25)
    assert np.allclose(vector.values, 0.25)
    with pytest.raises(LandmarkShapeError):
        LandmarkVector.from_points(np.ones((67, 2)))


def test_as_landmark_vector_passes_through_and_validates() -> None:
    vector = LandmarkVector.zeros()
    assert as_landmark_vector(vector) is vector
    assert len(as_landmark_vector([0.1] * 136)) == 136
    with pytest.raises(LandmarkShapeError):
        as_landmark_vector([0.1] * 130)


def test_ibug_mapping_covers_68_mesh_points() -> None:
    assert len(MESH_TO_IBUG68) == 68
    assert all(0 <= idx < MESH_LANDMARK_COUNT for idx in MESH_TO_IBUG68)

    mesh = np.stack([np.arange(MESH_LANDMARK_COUNT), np.zeros(MESH_LANDMARK_COUNT)], axis=1)
    points = mesh_to_ibug68(mesh)
    assert points.shape == (68, 2)
    assert list(points[:, 0].astype(int)) == list(MESH_TO_IBUG68)


def _mesh_result(count: int) -> SimpleNamespace:
    face = [SimpleNamespace(x=idx / count, y=0.5, z=0.0) for idx in range(count)]
    return SimpleNamespace(face_landmarks=[face])


def test_landmarks_from_result_maps_mesh_to_vector() -> None:
    vector = landmarks_from_result(_mesh_result(MESH_LANDMARK_COUNT))
    assert vector is not None
    assert len(vector) == 136
    assert vector.points()[0, 0] == pytest.approx(MESH_TO_IBUG68[0] / MESH_LANDMARK_COUNT)
    assert np.allclose(vector.points()[:, 1], 0.5)


def test_landmarks_from_result_without_face_returns_none() -> None:
    assert landmarks_from_result(SimpleNamespace(face_landmarks=[])) is None


def test_landmarks_from_result_rejects_unexpected_mesh_size() -> None:
    with pytest.raises(LandmarkShapeError):
        landmarks_from_result(_mesh_result(468))
