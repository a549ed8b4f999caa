from __future__ import annotations

import numpy as np
import pytest

from facemarks.config import CROP_PRESETS, FaceBox, OverlayStyle, PixelRect
from facemarks.errors import LandmarkShapeError
from facemarks.landmarks.provider_base import LandmarkVector
from facemarks.render.overlay import landmark_pixels, render_overlay


def _blank(height: int = 480, width: int = 640) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)


@pytest.mark.parametrize("preset", sorted(CROP_PRESETS))
def test_output_has_full_frame_dimensions(preset: str) -> None:
    image = _blank()
    region = CROP_PRESETS[preset].clip_to(640, 480)
    landmarks = LandmarkVector(np.full((136,), 0.5))

    rendered = render_overlay(image, landmarks, region)

    assert rendered.shape == image.shape
    assert rendered.shape[:2] != (region.height, region.width)


def test_source_image_is_not_mutated() -> None:
    image = _blank()
    render_overlay(image, LandmarkVector(np.full((136,), 0.5)), PixelRect(x=30, y=90, width=300, height=300))
    assert not image.any()


def test_markers_land_at_region_relative_positions() -> None:
    region = PixelRect(x=30, y=90, width=300, height=300)
    landmarks = LandmarkVector(np.full((136,), 0.5))
    style = OverlayStyle(marker_radius=2, marker_color=(0, 255, 0))

    rendered = render_overlay(_blank(), landmarks, region, style=style)

    assert rendered[240, 180, 1] > 200
    assert rendered[240, 180, 0] == 0
    assert not rendered[10:20, 500:510].any()


def test_landmark_pixels_scale_each_axis_by_region_size() -> None:
    region = PixelRect(x=10, y=20, width=200, height=100)
    points = np.zeros((68, 2))
    points[0] = [1.0, 1.0]
    pixels = landmark_pixels(LandmarkVector.from_points(points), region)
    assert tuple(pixels[0]) == (210.0, 120.0)
    assert tuple(pixels[1]) == (10.0, 20.0)


@pytest.mark.parametrize("length", [135, 137, 272])
def test_rejects_vectors_of_other_lengths(length: int) -> None:
    region = PixelRect(x=0, y=0, width=360, height=360)
    with pytest.raises(LandmarkShapeError):
        render_overlay(_blank(), np.full((length,), 0.5), region)


def test_draws_face_box_without_landmarks() -> None:
    style = OverlayStyle(box_color=(0, 200, 255), line_thickness=1)
    box = FaceBox(x=0.25, y=0.25, width=0.5, height=0.5)

    rendered = render_overlay(_blank(), None, None, face_box=box, style=style)

    assert tuple(rendered[120, 300]) == (0, 200, 255)
    assert not rendered[240, 320].any()


def test_rejects_non_color_images() -> None:
    with pytest.raises(ValueError):
        render_overlay(np.zeros((10, 10), dtype=np.uint8), None, None)
