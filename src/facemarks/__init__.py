"""FaceMarks: live camera frames with a 68-point face landmark overlay."""

from facemarks.config import CropGeometry, FacingDirection, SessionConfig
from facemarks.landmarks.provider_base import LandmarkVector
from facemarks.render.overlay import render_overlay
from facemarks.session.controller import SessionController, SessionState

__version__ = "0.1.0"

__all__ = [
    "CropGeometry",
    "FacingDirection",
    "LandmarkVector",
    "SessionConfig",
    "SessionController",
    "SessionState",
    "render_overlay",
]
