"""
Main Window
===========
Hosts the compose tab, a status bar and the remembered window settings.
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QByteArray, QSettings, QTimer
from PyQt6.QtGui import QCloseEvent
from PyQt6.QtWidgets import (
    QApplication, QLabel, QMainWindow, QMessageBox, QStatusBar, QWidget
)

from .tab_compose import ComposeTab


class MainWindow(QMainWindow):
    """
    Application window.

    Remembers its geometry and the last used image and export directories
    through QSettings. Nothing about the composition itself is persisted.
    """

    APP_NAME = "Layer Composer"
    APP_VERSION = "1.0.0"

    # QSettings keys
    SETTINGS_ORG = "LayerComposer"
    SETTINGS_APP = "LayerComposer"
    KEY_IMAGE_DIR = "image_directory"
    KEY_EXPORT_DIR = "export_directory"
    KEY_WINDOW_GEOMETRY = "window_geometry"

    READY_TEXT = "Ready"

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._settings = QSettings(self.SETTINGS_ORG, self.SETTINGS_APP)

        self._setup_window()
        self._setup_ui()
        self._setup_statusbar()
        self._restore_settings()

    def _setup_window(self):
        self.setWindowTitle(self.APP_NAME)
        self.setMinimumSize(1000, 680)
        self.resize(1280, 800)

        screen = QApplication.primaryScreen()
        if screen:
            geo = screen.availableGeometry()
            self.move((geo.width() - self.width()) // 2, (geo.height() - self.height()) // 2)

    def _setup_ui(self):
        self.compose_tab = ComposeTab()
        self.setCentralWidget(self.compose_tab)

    def _setup_statusbar(self):
        self.statusbar = QStatusBar()
        self.statusbar.setObjectName("mainStatusBar")
        self.setStatusBar(self.statusbar)

        self.status_label = QLabel(self.READY_TEXT)
        self.status_label.setObjectName("statusLabel")
        self.statusbar.addWidget(self.status_label)

        version_label = QLabel(f"◇ {self.APP_NAME} v{self.APP_VERSION}")
        version_label.setObjectName("statusRightLabel")
        self.statusbar.addPermanentWidget(version_label)

    def _restore_settings(self):
        geometry = self._settings.value(self.KEY_WINDOW_GEOMETRY)
        if isinstance(geometry, QByteArray) and not geometry.isEmpty():
            self.restoreGeometry(geometry)

        image_dir = self._settings.value(self.KEY_IMAGE_DIR, "")
        if image_dir and Path(image_dir).exists():
            self.compose_tab.set_image_directory(image_dir)

    def _save_settings(self):
        image_dir = self.compose_tab.get_image_directory()
        if image_dir:
            self._settings.setValue(self.KEY_IMAGE_DIR, image_dir)
        self._settings.setValue(self.KEY_WINDOW_GEOMETRY, self.saveGeometry())
        self._settings.sync()

    # === Public API ===

    def export_directory(self) -> str:
        """Last directory a composite was saved to, or the Pictures folder."""
        last_dir = self._settings.value(self.KEY_EXPORT_DIR, "")
        if last_dir and Path(last_dir).exists():
            return last_dir
        return str(Path.home() / "Pictures")

    def remember_export_directory(self, directory: str):
        self._settings.setValue(self.KEY_EXPORT_DIR, directory)

    def show_message(self, message: str, timeout: int = 3000):
        """Show a message in the status bar."""
        self.status_label.setText(message)
        if timeout > 0:
            QTimer.singleShot(timeout, lambda: self.status_label.setText(self.READY_TEXT))

    def show_error(self, title: str, message: str):
        QMessageBox.critical(self, title, message)

    def closeEvent(self, event: QCloseEvent):
        self.compose_tab.render_manager.shutdown()
        self._save_settings()
        event.accept()
