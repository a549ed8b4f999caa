"""Main window: live landmark view with flip and quit controls."""

from __future__ import annotations

from typing import Any

from PySide6.QtCore import Qt
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from facemarks.desktop.capture_worker import CaptureWorker
from facemarks.session.controller import SessionController


class MainWindow(QMainWindow):
    """FaceMarks main window: video view on top, buttons below."""

    def __init__(self, controller: SessionController) -> None:
        super().__init__()
        self.setWindowTitle("FaceMarks")
        self.resize(720, 640)

        self._worker = CaptureWorker(controller)
        self._build_ui()
        self._worker.frame_ready.connect(self._on_frame)
        self._worker.state_changed.connect(self._on_state_changed)
        self._worker.facing_changed.connect(self._on_facing_changed)
        self._worker.error.connect(self._on_error)
        self._worker.start()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        central = QWidget()
        root = QVBoxLayout(central)

        self._image_label = QLabel("Waiting for camera...")
        self._image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._image_label.setMinimumSize(360, 360)
        root.addWidget(self._image_label, stretch=1)

        buttons = QHBoxLayout()
        self._flip_btn = QPushButton("Flip Camera")
        self._flip_btn.setEnabled(False)
        self._flip_btn.clicked.connect(self._worker.flip)
        buttons.addWidget(self._flip_btn)

        quit_btn = QPushButton("Quit")
        quit_btn.clicked.connect(self.close)
        buttons.addWidget(quit_btn)
        root.addLayout(buttons)

        self.setCentralWidget(central)
        self.setStatusBar(QStatusBar())

    # ------------------------------------------------------------------
    # Worker callbacks (UI thread)
    # ------------------------------------------------------------------
    def _on_frame(self, image: QImage) -> None:
        pixmap = QPixmap.fromImage(image).scaled(
            self._image_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )
        self._image_label.setPixmap(pixmap)

    def _on_state_changed(self, state: str) -> None:
        if state == "denied":
            self._image_label.setText("Camera access denied.")
            self.statusBar().showMessage("No frames will be shown")
            return
        self._flip_btn.setEnabled(True)
        self.statusBar().showMessage(f"Session {state}")

    def _on_facing_changed(self, facing: str) -> None:
        self.statusBar().showMessage(f"Using {facing} camera", 3000)

    def _on_error(self, message: str) -> None:
        self._flip_btn.setEnabled(False)
        self.statusBar().showMessage("Capture error")
        QMessageBox.critical(self, "Capture Error", message[:2000])

    def closeEvent(self, event: Any) -> None:  # noqa: N802 – Qt override
        self._worker.shutdown()
        super().closeEvent(event)
