from __future__ import annotations

from pathlib import Path

import pytest

from facemarks.landmarks.mediapipe_face_landmarker import (
    OFFICIAL_FACE_LANDMARKER_MODEL_URL,
    MediaPipeLandmarkInferencer,
)


def test_inferencer_reports_helpful_model_missing_message(tmp_path: Path) -> None:
    missing_model = tmp_path / "missing.task"

    with pytest.raises(FileNotFoundError) as exc_info:
        MediaPipeLandmarkInferencer(missing_model)

    message = str(exc_info.value)
    assert "Model file not found" in message
    assert OFFICIAL_FACE_LANDMARKER_MODEL_URL in message
    assert "curl -L" in message
