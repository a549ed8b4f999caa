from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import cv2
import numpy as np

from facemarks.errors import LandmarkShapeError
from facemarks.landmarks.dlib68_mapping import MESH_LANDMARK_COUNT, mesh_to_ibug68
from facemarks.landmarks.provider_base import (
    LANDMARK_VALUES,
    LandmarkInferencer,
    LandmarkVector,
)

logger = logging.getLogger(__name__)

OFFICIAL_FACE_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/1/face_landmarker.task"
)
DEFAULT_MODEL_PATH = Path("models/face_landmarker.task")


def _build_missing_model_message(model_path: Path) -> str:
    return (
        f"Model file not found: {model_path}\n"
        f"Official model URL: {OFFICIAL_FACE_LANDMARKER_MODEL_URL}\n"
        "Download example:\n"
        f'mkdir -p "{model_path.parent}"\n'
        f'curl -L -o "{model_path}" "{OFFICIAL_FACE_LANDMARKER_MODEL_URL}"'
    )


def _require_model_file(model_path: str | Path) -> Path:
    resolved = Path(model_path)
    if not resolved.exists() or not resolved.is_file():
        raise FileNotFoundError(_build_missing_model_message(resolved))
    return resolved


def _import_mediapipe() -> Any:
    try:
        import mediapipe as mp  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "mediapipe is required for landmark inference. Install with: pip install mediapipe"
        ) from exc
    return mp


def landmarks_from_result(result: Any) -> LandmarkVector | None:
    """Reduce the first detected face mesh to a 68-point vector.

    Raises ``LandmarkShapeError`` when the mesh is not the expected size.
    """
    faces = getattr(result, "face_landmarks", None)
    if not faces:
        return None

    first_face = faces[0]
    if len(first_face) != MESH_LANDMARK_COUNT:
        raise LandmarkShapeError(MESH_LANDMARK_COUNT * 2, len(first_face) * 2)

    mesh = np.asarray([[point.x, point.y] for point in first_face], dtype=np.float64)
    points = mesh_to_ibug68(mesh)
    vector = LandmarkVector(points.reshape(-1))
    if len(vector) != LANDMARK_VALUES:
        raise LandmarkShapeError(LANDMARK_VALUES, len(vector))
    return vector


class MediaPipeLandmarkInferencer(LandmarkInferencer):
    """Face Landmarker task model run once per image region."""

    def __init__(self, model_path: str | Path = DEFAULT_MODEL_PATH, use_gpu_delegate: bool = False) -> None:
        model_file = _require_model_file(model_path)
        mp = _import_mediapipe()
        base_options_kwargs: dict[str, Any] = {"model_asset_path": str(model_file)}
        if use_gpu_delegate:
            base_options_kwargs["delegate"] = mp.tasks.BaseOptions.Delegate.GPU
        options = mp.tasks.vision.FaceLandmarkerOptions(
            base_options=mp.tasks.BaseOptions(**base_options_kwargs),
            running_mode=mp.tasks.vision.RunningMode.IMAGE,
            num_faces=1,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )
        self._mp = mp
        self._landmarker = mp.tasks.vision.FaceLandmarker.create_from_options(options)
        logger.info("Loaded face landmark model from %s", model_file)

    def infer(self, image: np.ndarray) -> LandmarkVector | None:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(
            image_format=self._mp.ImageFormat.SRGB,
            data=np.ascontiguousarray(rgb),
        )
        return landmarks_from_result(self._landmarker.detect(mp_image))

    def close(self) -> None:
        self._landmarker.close()
