from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from facemarks.config import FaceBox, OverlayStyle, PixelRect
from facemarks.landmarks.provider_base import LandmarkVector, as_landmark_vector


def landmark_pixels(landmarks: LandmarkVector, region: PixelRect) -> np.ndarray:
    """Map region-normalized landmarks to ``(68, 2)`` frame pixel coordinates."""
    points = landmarks.points()
    scale = np.asarray([region.width, region.height], dtype=np.float64)
    offset = np.asarray([region.x, region.y], dtype=np.float64)
    return points * scale + offset


def render_overlay(
    image: np.ndarray,
    landmarks: LandmarkVector | Sequence[float] | np.ndarray | None,
    region: PixelRect | None,
    face_box: FaceBox | PixelRect | None = None,
    style: OverlayStyle | None = None,
) -> np.ndarray:
    """Draw landmarks (and an optional box) on a copy of the full frame.

    The returned image always has the source frame's dimensions, whatever the
    region the landmarks were inferred on.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an HxWx3 image, got shape: {image.shape}")
    style = style or OverlayStyle()
    canvas = np.ascontiguousarray(image).copy()
    height, width = canvas.shape[:2]

    if face_box is not None:
        box = face_box.to_pixels(width, height) if isinstance(face_box, FaceBox) else face_box
        cv2.rectangle(
            canvas,
            (box.x, box.y),
            (box.x + box.width - 1, box.y + box.height - 1),
            style.box_color,
            style.line_thickness,
        )

    if landmarks is None or region is None:
        return canvas

    vector = as_landmark_vector(landmarks)
    for x, y in landmark_pixels(vector, region):
        if not (np.isfinite(x) and np.isfinite(y)):
            continue
        cv2.circle(
            canvas,
            (int(round(x)), int(round(y))),
            style.marker_radius,
            style.marker_color,
            thickness=-1,
            lineType=cv2.LINE_AA,
        )
    return canvas
