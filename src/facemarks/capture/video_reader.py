"""Frames from video files, shaped like the frames a live camera produces."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import cv2
import numpy as np

VIDEO_SUFFIXES = frozenset({".mp4", ".avi", ".mov", ".mkv", ".m4v"})


@dataclass(frozen=True)
class Frame:
    """One BGR image with its position in the stream."""

    idx: int
    timestamp_ms: int
    image: np.ndarray

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass(frozen=True)
class VideoInfo:
    path: Path
    fps: float
    frame_count: int
    width: int
    height: int

    @property
    def duration_ms(self) -> int:
        return self.timestamp_ms(self.frame_count)

    def timestamp_ms(self, frame_idx: int) -> int:
        return round(frame_idx * 1000 / self.fps)


def _checked_video_path(path: str | Path) -> Path:
    video_path = Path(path)
    if not video_path.exists():
        raise FileNotFoundError(f"Video file does not exist: {video_path}")
    if not video_path.is_file():
        raise ValueError(f"Video path is not a file: {video_path}")
    if video_path.suffix.lower() not in VIDEO_SUFFIXES:
        raise ValueError(
            f"Unsupported video extension '{video_path.suffix}'. "
            f"Supported: {', '.join(sorted(VIDEO_SUFFIXES))}"
        )
    return video_path


@contextmanager
def _opened(video_path: Path) -> Iterator[cv2.VideoCapture]:
    cap = cv2.VideoCapture(str(video_path))
    try:
        if not cap.isOpened():
            raise RuntimeError(f"OpenCV could not open video: {video_path}")
        yield cap
    finally:
        cap.release()


def probe_video(path: str | Path) -> VideoInfo:
    """Read fps, frame count and size; raises on unusable metadata."""
    video_path = _checked_video_path(path)
    with _opened(video_path) as cap:
        info = VideoInfo(
            path=video_path,
            fps=float(cap.get(cv2.CAP_PROP_FPS)),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
    if info.fps <= 0:
        raise RuntimeError(f"Video reports no frame rate: {video_path}")
    if info.width <= 0 or info.height <= 0:
        raise RuntimeError(f"Video reports no frame size: {video_path}")
    if info.frame_count < 0:
        raise RuntimeError(f"Video reports a negative frame count: {video_path}")
    return info


def iter_frames(
    path: str | Path,
    *,
    stride: int = 1,
    start: int = 0,
    end: int | None = None,
) -> Iterator[Frame]:
    """Yield every ``stride``-th BGR frame in ``[start, end)``.

    Frame indices and timestamps are absolute positions in the file, so a
    clip read from ``start=10`` begins at ``idx == 10``.
    """
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got: {stride}")
    if start < 0:
        raise ValueError(f"start must be >= 0, got: {start}")
    if end is not None and end < start:
        raise ValueError(f"end ({end}) must not be before start ({start})")

    info = probe_video(path)
    with _opened(info.path) as cap:
        if start:
            cap.set(cv2.CAP_PROP_POS_FRAMES, start)
        idx = start
        while end is None or idx < end:
            ok, image = cap.read()
            if not ok:
                return
            if (idx - start) % stride == 0:
                yield Frame(idx=idx, timestamp_ms=info.timestamp_ms(idx), image=image)
            idx += 1
