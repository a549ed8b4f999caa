"""Camera capture session: one device input, one frame output."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

import cv2
import numpy as np

from facemarks.capture.video_reader import Frame
from facemarks.config import FacingDirection, SessionConfig
from facemarks.errors import CameraUnavailableError

logger = logging.getLogger(__name__)


class CaptureDevice(ABC):
    """An opened camera."""

    @abstractmethod
    def read(self) -> tuple[bool, np.ndarray | None]:
        """Grab the next BGR image."""

    @abstractmethod
    def set_resolution(self, width: int, height: int) -> None:
        """Request a capture resolution."""

    @abstractmethod
    def release(self) -> None:
        """Give the device back to the OS."""


class CaptureBackend(ABC):
    @abstractmethod
    def open(self, index: int) -> CaptureDevice | None:
        """Open the device at ``index`` or return ``None`` when it is unavailable."""


class OpenCVCaptureDevice(CaptureDevice):
    def __init__(self, capture: Any) -> None:
        self._capture = capture

    def read(self) -> tuple[bool, np.ndarray | None]:
        ok, image = self._capture.read()
        return bool(ok), image if ok else None

    def set_resolution(self, width: int, height: int) -> None:
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

    def release(self) -> None:
        self._capture.release()


class OpenCVCaptureBackend(CaptureBackend):
    def open(self, index: int) -> CaptureDevice | None:
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            return None
        return OpenCVCaptureDevice(capture)


def list_devices(backend: CaptureBackend | None = None, max_index: int = 8) -> list[int]:
    """Return the device indices in ``[0, max_index)`` that open."""
    backend = backend or OpenCVCaptureBackend()
    available: list[int] = []
    for index in range(max_index):
        device = backend.open(index)
        if device is None:
            continue
        device.release()
        available.append(index)
    return available


@dataclass
class CaptureInput:
    facing: FacingDirection
    index: int
    device: CaptureDevice


@dataclass
class FrameOutput:
    mirrored: bool
    delivered: int = field(default=0)


class CameraSession:
    """Holds at most one input and one output for the active facing direction.

    Configuration errors (no device, device refuses to open) end the attempt
    quietly: ``configure`` returns ``False`` and ``read`` yields nothing.
    """

    def __init__(self, config: SessionConfig, backend: CaptureBackend | None = None) -> None:
        self._config = config
        self._backend = backend or OpenCVCaptureBackend()
        self._lock = threading.RLock()
        self._inputs: list[CaptureInput] = []
        self._outputs: list[FrameOutput] = []
        self._next_idx = 0
        self._started_at = time.monotonic()

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def facing(self) -> FacingDirection:
        return self._config.facing

    @property
    def inputs(self) -> tuple[CaptureInput, ...]:
        return tuple(self._inputs)

    @property
    def outputs(self) -> tuple[FrameOutput, ...]:
        return tuple(self._outputs)

    @property
    def is_configured(self) -> bool:
        return bool(self._inputs) and bool(self._outputs)

    def require_configured(self) -> None:
        """Raise ``CameraUnavailableError`` unless a device is attached."""
        if not self.is_configured:
            raise CameraUnavailableError(
                f"No camera available for facing '{self.facing.value}'"
            )

    @contextmanager
    def configuration(self) -> Iterator[None]:
        """Hold off frame reads while inputs and outputs change."""
        with self._lock:
            yield

    def configure(self) -> bool:
        with self.configuration():
            facing = self._config.facing
            index = self._config.device_index(facing)
            if index is None:
                logger.warning("No capture device configured for %s camera", facing.value)
                return False

            device = self._backend.open(index)
            if device is None:
                logger.warning("Capture device %d (%s) could not be opened", index, facing.value)
                return False

            width, height = self._config.resolution
            device.set_resolution(width, height)
            self._inputs.append(CaptureInput(facing=facing, index=index, device=device))
            mirrored = facing is FacingDirection.front and self._config.mirror_front
            self._outputs.append(FrameOutput(mirrored=mirrored))
            logger.info(
                "Configured %s camera (device %d, %dx%d requested)",
                facing.value,
                index,
                width,
                height,
            )
            return True

    def flip(self) -> bool:
        """Swap to the other facing direction; returns whether the new device is live.

        The direction toggles even when nothing is attached, so flipping back
        after a failed configure reopens the previous camera.
        """
        with self.configuration():
            for capture_input in list(self._inputs):
                self._remove_input(capture_input)
            self._outputs.clear()
            self._config = self._config.flipped()
            return self.configure()

    def read(self) -> Frame | None:
        with self._lock:
            if not self.is_configured:
                return None
            ok, image = self._inputs[0].device.read()
            if not ok or image is None:
                return None
            output = self._outputs[0]
            if output.mirrored:
                image = cv2.flip(image, 1)
            output.delivered += 1
            frame = Frame(
                idx=self._next_idx,
                timestamp_ms=round((time.monotonic() - self._started_at) * 1000),
                image=image,
            )
            self._next_idx += 1
            return frame

    def close(self) -> None:
        with self.configuration():
            for capture_input in list(self._inputs):
                self._remove_input(capture_input)
            self._outputs.clear()

    def _remove_input(self, capture_input: CaptureInput) -> None:
        self._inputs.remove(capture_input)
        capture_input.device.release()
