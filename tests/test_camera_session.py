from __future__ import annotations

import numpy as np
import pytest

from conftest import FakeBackend
from facemarks.capture.camera_session import CameraSession, list_devices
from facemarks.config import CaptureQuality, FacingDirection, SessionConfig
from facemarks.errors import CameraUnavailableError


def test_configure_opens_device_for_facing_direction(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(quality=CaptureQuality.high), backend=backend)

    assert session.configure()

    assert session.is_configured
    assert len(session.inputs) == 1
    assert len(session.outputs) == 1
    assert session.inputs[0].facing is FacingDirection.front
    assert backend.opened[0].index == 0
    assert backend.opened[0].resolution == (1280, 720)


def test_flip_twice_restores_direction_without_leaking_handles(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()
    before = (len(session.inputs), len(session.outputs))

    assert session.flip()
    assert session.facing is FacingDirection.back
    assert session.inputs[0].index == 1

    assert session.flip()
    assert session.facing is FacingDirection.front
    assert (len(session.inputs), len(session.outputs)) == before
    assert len(backend.live_devices) == 1
    assert [device.released for device in backend.opened] == [True, True, False]


def test_missing_device_configures_nothing_and_reads_nothing() -> None:
    backend = FakeBackend(available=())
    session = CameraSession(SessionConfig(), backend=backend)

    assert not session.configure()
    assert not session.is_configured
    assert session.read() is None
    assert not session.flip()
    assert session.facing is FacingDirection.back
    assert backend.opened == []


def test_flip_to_missing_device_leaves_session_empty() -> None:
    backend = FakeBackend(available=(0,))
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()

    assert not session.flip()
    assert session.facing is FacingDirection.back
    assert session.inputs == ()
    assert session.outputs == ()
    assert session.read() is None
    assert backend.live_devices == []


def test_flip_back_from_missing_device_reopens_previous_camera() -> None:
    backend = FakeBackend(available=(0,))
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()

    assert not session.flip()
    assert session.flip()

    assert session.facing is FacingDirection.front
    assert len(session.inputs) == 1
    assert len(session.outputs) == 1
    assert [device.index for device in backend.live_devices] == [0]
    assert session.read() is not None


def test_front_frames_are_mirrored_and_indexed(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()

    first = session.read()
    second = session.read()

    assert first is not None and second is not None
    assert (first.idx, second.idx) == (0, 1)
    assert second.timestamp_ms >= first.timestamp_ms
    assert np.all(first.image[:, -10:] == 255)
    assert not first.image[:, :10].any()
    assert session.outputs[0].delivered == 2


def test_back_frames_are_not_mirrored(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(facing=FacingDirection.back), backend=backend)
    session.configure()

    frame = session.read()

    assert frame is not None
    assert np.all(frame.image[:, :10] == 255)


def test_frame_indices_continue_across_flip(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()
    session.read()
    session.flip()

    frame = session.read()

    assert frame is not None
    assert frame.idx == 1


def test_close_releases_everything(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()
    session.close()

    assert not session.is_configured
    assert backend.live_devices == []
    assert session.read() is None


def test_list_devices_reports_openable_indices() -> None:
    backend = FakeBackend(available=(0, 2))
    assert list_devices(backend, max_index=4) == [0, 2]
    assert backend.live_devices == []


def test_require_configured_raises_without_device() -> None:
    session = CameraSession(SessionConfig(), backend=FakeBackend(available=()))
    session.configure()

    with pytest.raises(CameraUnavailableError, match="front"):
        session.require_configured()


def test_require_configured_passes_with_device(backend: FakeBackend) -> None:
    session = CameraSession(SessionConfig(), backend=backend)
    session.configure()

    session.require_configured()
