"""Session lifecycle and per-frame wiring of capture, inference and rendering."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, Protocol, runtime_checkable

import numpy as np

from facemarks.capture.camera_session import CameraSession, CaptureBackend
from facemarks.capture.permission import CameraPermission, PermissionStatus, StaticPermission
from facemarks.capture.video_reader import Frame
from facemarks.config import FaceBox, FacingDirection, PixelRect, RegionMode, SessionConfig
from facemarks.landmarks.landmark_store import LandmarkSnapshot, LandmarkStore
from facemarks.landmarks.provider_base import FaceDetector, LandmarkInferencer
from facemarks.render.overlay import render_overlay

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    uninitialized = "uninitialized"
    permission_pending = "permission_pending"
    configuring = "configuring"
    running = "running"
    denied = "denied"


@runtime_checkable
class FrameConsumer(Protocol):
    def captured(self, image: np.ndarray) -> None: ...


class CallbackConsumer:
    """Adapts a plain callable to the ``FrameConsumer`` contract."""

    def __init__(self, callback: Callable[[np.ndarray], None]) -> None:
        self._callback = callback

    def captured(self, image: np.ndarray) -> None:
        self._callback(image)


class SessionController:
    """Owns the capture session and delivers one rendered image per frame.

    ``start``, ``flip`` and ``stop`` are serialized on a single session thread
    and return futures. Frames are pulled by ``step``/``run`` on the caller's
    thread. Inference runs on a separate pool unless ``inline_inference`` is
    set, in which case it runs inside ``step``. At most
    ``config.inference_workers`` jobs are in flight; a frame that arrives while
    every slot is busy is rendered with the latest snapshot and not inferred.
    """

    def __init__(
        self,
        config: SessionConfig,
        inferencer: LandmarkInferencer,
        *,
        consumer: FrameConsumer | None = None,
        permission: CameraPermission | None = None,
        backend: CaptureBackend | None = None,
        face_detector: FaceDetector | None = None,
        inline_inference: bool = False,
    ) -> None:
        if config.region_mode is RegionMode.detected_face and face_detector is None:
            raise ValueError("detected-face region mode requires a face detector")
        self._inferencer = inferencer
        self._consumer = consumer
        self._permission = permission or StaticPermission()
        self._face_detector = face_detector
        self._session = CameraSession(config, backend=backend)
        self._store = LandmarkStore()
        self._state = SessionState.uninitialized
        self._state_lock = threading.Lock()
        self._pending_error: BaseException | None = None
        self._session_queue = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session")
        self._inference_pool = (
            None
            if inline_inference
            else ThreadPoolExecutor(
                max_workers=config.inference_workers, thread_name_prefix="inference"
            )
        )
        self._inference_slots = threading.BoundedSemaphore(config.inference_workers)
        self._generation = 0
        self._in_flight: set[Future] = set()
        self.frames_delivered = 0
        self.inferences_skipped = 0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def config(self) -> SessionConfig:
        return self._session.config

    @property
    def facing(self) -> FacingDirection:
        return self._session.facing

    @property
    def session(self) -> CameraSession:
        return self._session

    @property
    def store(self) -> LandmarkStore:
        return self._store

    def set_consumer(self, consumer: FrameConsumer | None) -> None:
        self._consumer = consumer

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------
    def start(self) -> Future:
        return self._session_queue.submit(self._start)

    def flip(self) -> Future:
        return self._session_queue.submit(self._flip)

    def stop(self) -> Future:
        return self._session_queue.submit(self._stop)

    def close(self) -> None:
        """Stop, wait for in-flight inference and release the worker threads."""
        self.stop().result()
        self._session_queue.shutdown(wait=True)
        if self._inference_pool is not None:
            self._inference_pool.shutdown(wait=True)

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            previous, self._state = self._state, state
        if previous is not state:
            logger.debug("Session state %s -> %s", previous.value, state.value)

    def _start(self) -> SessionState:
        if self.state in (SessionState.running, SessionState.denied):
            return self.state

        status = self._permission.status()
        if status is PermissionStatus.not_determined:
            self._set_state(SessionState.permission_pending)
            granted = self._permission.request()
        else:
            granted = status is PermissionStatus.authorized

        if not granted:
            logger.warning("Camera access was not granted; no frames will be produced")
            self._set_state(SessionState.denied)
            return self.state

        self._set_state(SessionState.configuring)
        self._session.configure()
        self._set_state(SessionState.running)
        return self.state

    def _flip(self) -> bool:
        if self.state is not SessionState.running:
            return False
        self._set_state(SessionState.configuring)
        try:
            live = self._session.flip()
        finally:
            self._set_state(SessionState.running)
        logger.info("Flipped to %s camera", self._session.facing.value)
        return live

    def _stop(self) -> None:
        self._session.close()
        with self._state_lock:
            self._generation += 1
            self._store.clear()
        if self.state is not SessionState.denied:
            self._set_state(SessionState.uninitialized)

    # ------------------------------------------------------------------
    # Frame pipeline
    # ------------------------------------------------------------------
    def step(self) -> bool:
        """Process one frame; returns whether an image was delivered."""
        self._raise_pending_error()
        if self.state is not SessionState.running:
            return False
        frame = self._session.read()
        if frame is None:
            return False
        self.process_frame(frame)
        return True

    def run(
        self,
        max_frames: int | None = None,
        should_stop: Callable[[], bool] | None = None,
        idle_sleep: float = 0.01,
    ) -> int:
        """Call ``step`` until stopped; returns the number of delivered frames."""
        delivered = 0
        while should_stop is None or not should_stop():
            if max_frames is not None and delivered >= max_frames:
                break
            if self.step():
                delivered += 1
                continue
            if self.state in (SessionState.denied, SessionState.uninitialized):
                break
            time.sleep(idle_sleep)
        return delivered

    def wait_for_inference(self, timeout: float | None = None) -> bool:
        """Block until the jobs in flight right now finish; False on timeout."""
        with self._state_lock:
            pending = list(self._in_flight)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def process_frame(self, frame: Frame) -> np.ndarray:
        region, box = self._resolve_region(frame)
        if region is not None:
            self._dispatch_inference(frame, region)

        snapshot = self._store.latest()
        rendered = render_overlay(
            frame.image,
            snapshot.vector if snapshot is not None else None,
            snapshot.region if snapshot is not None else None,
            face_box=box if self.config.draw_box else None,
            style=self.config.style,
        )
        self.frames_delivered += 1
        if self._consumer is not None:
            self._consumer.captured(rendered)
        return rendered

    def _resolve_region(self, frame: Frame) -> tuple[PixelRect | None, FaceBox | PixelRect | None]:
        if self.config.region_mode is RegionMode.detected_face:
            if self._face_detector is None:
                raise RuntimeError("detected-face region mode has no face detector")
            face = self._face_detector.detect(frame.image)
            if face is None:
                return None, None
            return face.to_pixels(frame.width, frame.height), face

        try:
            region = self.config.crop.clip_to(frame.width, frame.height)
        except ValueError as exc:
            logger.debug("Skipping inference for frame %d: %s", frame.idx, exc)
            return None, None
        return region, region

    def _dispatch_inference(self, frame: Frame, region: PixelRect) -> None:
        rows, cols = region.slices()
        crop = np.ascontiguousarray(frame.image[rows, cols])
        with self._state_lock:
            generation = self._generation
        if self._inference_pool is None:
            self._infer(frame.idx, crop, region, generation)
            return
        if not self._inference_slots.acquire(blocking=False):
            self.inferences_skipped += 1
            logger.debug("Inference busy; frame %d reuses the latest landmarks", frame.idx)
            return
        try:
            future = self._inference_pool.submit(
                self._run_inference_job, frame.idx, crop, region, generation
            )
        except RuntimeError:
            self._inference_slots.release()
            raise
        with self._state_lock:
            self._in_flight.add(future)
        future.add_done_callback(self._on_inference_done)

    def _run_inference_job(
        self, frame_idx: int, crop: np.ndarray, region: PixelRect, generation: int
    ) -> bool:
        try:
            return self._infer(frame_idx, crop, region, generation)
        finally:
            self._inference_slots.release()

    def _infer(self, frame_idx: int, crop: np.ndarray, region: PixelRect, generation: int) -> bool:
        vector = self._inferencer.infer(crop)
        if vector is None:
            return False
        with self._state_lock:
            if generation != self._generation:
                logger.debug("Dropped landmarks from frame %d; the session was stopped", frame_idx)
                return False
            accepted = self._store.publish(
                LandmarkSnapshot(frame_idx=frame_idx, vector=vector, region=region)
            )
        if not accepted:
            logger.debug("Dropped landmarks from frame %d; a newer result exists", frame_idx)
        return accepted

    def _on_inference_done(self, future: Future) -> None:
        with self._state_lock:
            self._in_flight.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            return
        with self._state_lock:
            if self._pending_error is None:
                self._pending_error = exc

    def _raise_pending_error(self) -> None:
        with self._state_lock:
            error, self._pending_error = self._pending_error, None
        if error is not None:
            raise error
