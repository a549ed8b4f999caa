from __future__ import annotations

import threading
from dataclasses import dataclass

from facemarks.config import PixelRect
from facemarks.landmarks.provider_base import LandmarkVector


@dataclass(frozen=True)
class LandmarkSnapshot:
    frame_idx: int
    vector: LandmarkVector
    region: PixelRect


class LandmarkStore:
    """Latest landmark result, replaced whole and never by an older frame."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: LandmarkSnapshot | None = None

    def publish(self, snapshot: LandmarkSnapshot) -> bool:
        with self._lock:
            current = self._snapshot
            if current is not None and snapshot.frame_idx < current.frame_idx:
                return False
            self._snapshot = snapshot
            return True

    def latest(self) -> LandmarkSnapshot | None:
        with self._lock:
            return self._snapshot

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
