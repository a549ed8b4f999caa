"""Application entry-point for the FaceMarks desktop viewer.

Usage (development)::

    python -m facemarks.desktop.app
"""

from __future__ import annotations

import sys

from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication, QMessageBox

from facemarks.config import RegionMode, SessionConfig
from facemarks.desktop.main_window import MainWindow
from facemarks.landmarks.haar_face_detector import HaarFaceDetector
from facemarks.landmarks.mediapipe_face_landmarker import MediaPipeLandmarkInferencer
from facemarks.logging_config import setup_logging
from facemarks.runtime_paths import get_config_dir
from facemarks.session.controller import SessionController


def main(config: SessionConfig | None = None) -> None:
    """Launch the FaceMarks desktop application."""
    setup_logging()
    config = config or SessionConfig()

    # Use INI file instead of the OS registry for portable settings
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    QSettings.setPath(QSettings.Format.IniFormat, QSettings.Scope.UserScope, str(config_dir))

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("FaceMarks")
    app.setOrganizationName("FaceMarks")

    try:
        inferencer = MediaPipeLandmarkInferencer(config.model_path)
    except (FileNotFoundError, ImportError) as exc:
        QMessageBox.critical(None, "Model Error", str(exc))
        sys.exit(1)

    face_detector = (
        HaarFaceDetector() if config.region_mode is RegionMode.detected_face else None
    )
    controller = SessionController(config, inferencer, face_detector=face_detector)

    window = MainWindow(controller)
    window.show()

    code = app.exec()
    inferencer.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
