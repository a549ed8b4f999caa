from __future__ import annotations

import numpy as np
import pytest

pytest.importorskip("PySide6.QtGui")

from facemarks.desktop.image_utils import bgr_to_qimage  # noqa: E402


def test_bgr_to_qimage_swaps_channels_and_keeps_size() -> None:
    image = np.zeros((48, 64, 3), dtype=np.uint8)
    image[:, :, 0] = 255  # blue in BGR

    qimage = bgr_to_qimage(image)

    assert (qimage.width(), qimage.height()) == (64, 48)
    color = qimage.pixelColor(10, 10)
    assert (color.red(), color.green(), color.blue()) == (0, 0, 255)


def test_bgr_to_qimage_rejects_grayscale() -> None:
    with pytest.raises(ValueError):
        bgr_to_qimage(np.zeros((4, 4), dtype=np.uint8))
