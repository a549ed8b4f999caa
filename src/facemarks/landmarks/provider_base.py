from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from facemarks.config import FaceBox
from facemarks.errors import LandmarkShapeError

LANDMARK_POINTS = 68
LANDMARK_VALUES = LANDMARK_POINTS * 2


@dataclass(frozen=True)
class LandmarkVector:
    """68 (x, y) pairs normalized to the region the model saw."""

    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=np.float64).reshape(-1)
        if values.shape[0] != LANDMARK_VALUES:
            raise LandmarkShapeError(LANDMARK_VALUES, int(values.shape[0]))
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @classmethod
    def from_points(cls, points: Any) -> "LandmarkVector":
        array = np.asarray(points, dtype=np.float64)
        if array.shape != (LANDMARK_POINTS, 2):
            raise LandmarkShapeError(LANDMARK_VALUES, int(array.size))
        return cls(array.reshape(-1))

    @classmethod
    def zeros(cls) -> "LandmarkVector":
        return cls(np.zeros((LANDMARK_VALUES,), dtype=np.float64))

    def points(self) -> np.ndarray:
        return self.values.reshape(LANDMARK_POINTS, 2)

    def __len__(self) -> int:
        return int(self.values.shape[0])


def as_landmark_vector(landmarks: LandmarkVector | Sequence[float] | np.ndarray) -> LandmarkVector:
    if isinstance(landmarks, LandmarkVector):
        return landmarks
    return LandmarkVector(np.asarray(landmarks, dtype=np.float64))


class LandmarkInferencer(ABC):
    """Interface for region-level facial landmark inference."""

    @abstractmethod
    def infer(self, image: np.ndarray) -> LandmarkVector | None:
        """Return normalized landmarks for a BGR region, or ``None`` without a face."""

    def close(self) -> None:
        """Release model resources."""


class FaceDetector(ABC):
    @abstractmethod
    def detect(self, image: np.ndarray) -> FaceBox | None:
        """Return the most prominent face in a BGR frame."""
