from __future__ import annotations


class FaceMarksError(Exception):
    """Base class for FaceMarks errors."""


class LandmarkShapeError(FaceMarksError):
    """Landmark output does not have the expected 68 x 2 layout.

    Raised by the inferencer when the model output has an unexpected shape and
    by the renderer when handed a vector of the wrong length. Never recovered.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected} landmark values, got {actual}")
        self.expected = expected
        self.actual = actual


class CameraUnavailableError(FaceMarksError):
    """No capture device could be configured."""
