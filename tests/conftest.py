"""Shared fakes standing in for camera hardware and the landmark model."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from facemarks.capture.camera_session import CaptureBackend, CaptureDevice
from facemarks.config import FaceBox
from facemarks.errors import LandmarkShapeError
from facemarks.landmarks.provider_base import FaceDetector, LandmarkInferencer, LandmarkVector

FRAME_HEIGHT = 480
FRAME_WIDTH = 640


def make_frame_image(height: int = FRAME_HEIGHT, width: int = FRAME_WIDTH) -> np.ndarray:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :10] = 255
    return image


class FakeDevice(CaptureDevice):
    def __init__(self, index: int, image: np.ndarray) -> None:
        self.index = index
        self.image = image
        self.released = False
        self.resolution: tuple[int, int] | None = None

    def read(self) -> tuple[bool, np.ndarray | None]:
        if self.released:
            return False, None
        return True, self.image.copy()

    def set_resolution(self, width: int, height: int) -> None:
        self.resolution = (width, height)

    def release(self) -> None:
        self.released = True


class FakeBackend(CaptureBackend):
    def __init__(self, available: tuple[int, ...] = (0, 1), image: np.ndarray | None = None) -> None:
        self.available = set(available)
        self.image = make_frame_image() if image is None else image
        self.opened: list[FakeDevice] = []

    def open(self, index: int) -> CaptureDevice | None:
        if index not in self.available:
            return None
        device = FakeDevice(index, self.image)
        self.opened.append(device)
        return device

    @property
    def live_devices(self) -> list[FakeDevice]:
        return [device for device in self.opened if not device.released]


class FakeInferencer(LandmarkInferencer):
    def __init__(self, value: float = 0.5, *, error: Exception | None = None, face: bool = True) -> None:
        self.value = value
        self.error = error
        self.face = face
        self.calls = 0
        self.shapes: list[tuple[int, ...]] = []
        self.closed = False

    def infer(self, image: np.ndarray) -> LandmarkVector | None:
        self.calls += 1
        self.shapes.append(tuple(image.shape))
        if self.error is not None:
            raise self.error
        if not self.face:
            return None
        return LandmarkVector(np.full((136,), self.value))

    def close(self) -> None:
        self.closed = True


class GatedInferencer(FakeInferencer):
    """Holds call N until the test opens gate N, like a model slower than the camera."""

    def __init__(self, value: float = 0.5) -> None:
        super().__init__(value)
        self.started = 0
        self._lock = threading.Lock()
        self._gates: list[threading.Event] = []
        self._all_open = False

    def _gate(self, call: int) -> threading.Event:
        with self._lock:
            while len(self._gates) <= call:
                gate = threading.Event()
                if self._all_open:
                    gate.set()
                self._gates.append(gate)
            return self._gates[call]

    def release(self, call: int) -> None:
        self._gate(call).set()

    def release_all(self) -> None:
        with self._lock:
            self._all_open = True
            for gate in self._gates:
                gate.set()

    def infer(self, image: np.ndarray) -> LandmarkVector | None:
        with self._lock:
            call = self.started
            self.started += 1
        self._gate(call).wait(timeout=10.0)
        return super().infer(image)


class FakeFaceDetector(FaceDetector):
    def __init__(self, box: FaceBox | None) -> None:
        self.box = box

    def detect(self, image: np.ndarray) -> FaceBox | None:
        return self.box


class FrameCollector:
    def __init__(self) -> None:
        self.images: list[np.ndarray] = []

    def captured(self, image: np.ndarray) -> None:
        self.images.append(image)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def inferencer() -> FakeInferencer:
    return FakeInferencer()


@pytest.fixture
def collector() -> FrameCollector:
    return FrameCollector()


@pytest.fixture
def shape_error() -> LandmarkShapeError:
    return LandmarkShapeError(136, 140)
