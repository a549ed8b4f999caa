from __future__ import annotations

import cv2
import numpy as np

from facemarks.config import FaceBox
from facemarks.landmarks.provider_base import FaceDetector

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class HaarFaceDetector(FaceDetector):
    """OpenCV frontal-face cascade; reports the largest face."""

    def __init__(
        self,
        cascade_path: str | None = None,
        *,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: tuple[int, int] = (60, 60),
    ) -> None:
        path = cascade_path or cv2.data.haarcascades + DEFAULT_CASCADE
        self._cascade = cv2.CascadeClassifier(path)
        if self._cascade.empty():
            raise RuntimeError(f"Failed to load cascade: {path}")
        self._scale_factor = scale_factor
        self._min_neighbors = min_neighbors
        self._min_size = min_size

    def detect(self, image: np.ndarray) -> FaceBox | None:
        height, width = image.shape[:2]
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            minSize=self._min_size,
        )
        if len(faces) == 0:
            return None
        x, y, w, h = max(faces, key=lambda box: int(box[2]) * int(box[3]))
        return FaceBox(
            x=float(x) / width,
            y=float(y) / height,
            width=min(float(w) / width, 1.0 - float(x) / width),
            height=min(float(h) / height, 1.0 - float(y) / height),
        )
