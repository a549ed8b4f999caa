"""Background QThread worker that pulls camera frames through the pipeline."""

from __future__ import annotations

import traceback

import numpy as np
from PySide6.QtCore import QThread, Signal
from PySide6.QtGui import QImage

from facemarks.desktop.image_utils import bgr_to_qimage
from facemarks.session.controller import SessionController, SessionState


class CaptureWorker(QThread):
    """Run the session frame loop off the UI thread.

    Signals
    -------
    frame_ready(QImage)
        Emitted for every rendered frame; queued onto the UI thread.
    state_changed(str)
        Emitted with the session state once ``start`` completes.
    facing_changed(str)
        Emitted with the new facing direction after a flip.
    error(str)
        Emitted when the loop stops on an exception.
    """

    frame_ready = Signal(QImage)
    state_changed = Signal(str)
    facing_changed = Signal(str)
    error = Signal(str)

    def __init__(self, controller: SessionController, *, parent: QThread | None = None) -> None:
        super().__init__(parent)
        self._controller = controller
        self._controller.set_consumer(self)

    def captured(self, image: np.ndarray) -> None:
        self.frame_ready.emit(bgr_to_qimage(image))

    # ------------------------------------------------------------------
    def run(self) -> None:  # noqa: D401 – overridden Qt method
        """Start the session and loop until interrupted."""
        try:
            state = self._controller.start().result()
            self.state_changed.emit(state.value)
            if state is SessionState.denied:
                return
            self._controller.run(should_stop=self.isInterruptionRequested)
        except Exception as exc:
            tb = traceback.format_exc()
            self.error.emit(f"{exc}\n\n{tb}")

    def flip(self) -> None:
        future = self._controller.flip()
        future.add_done_callback(lambda _: self.facing_changed.emit(self._controller.facing.value))

    def shutdown(self) -> None:
        self.requestInterruption()
        self.wait()
        self._controller.close()
