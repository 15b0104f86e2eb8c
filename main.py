"""
Layer Composer - Main Entry Point
=================================
A desktop application that composites a base image, a color shade,
centered text and a watermark into a downloadable JPEG.

Usage:
    python main.py

Architecture:
    - Model: composer/core/ (pure compositing with Pillow)
    - View: composer/ui/ (PyQt6 interface)
    - Controller: This file (signal/slot connections)

Features:
    - Live preview, re-rendered on every parameter change
    - Debounced background rendering; stale results never replace newer ones
    - One-click download as edited-image.jpg
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication, QFileDialog

from composer.core import save_composite, EXPORT_FILENAME
from composer.ui import MainWindow

logger = logging.getLogger(__name__)


class ComposerController:
    """
    Controller class that connects UI signals to export and status updates.

    Rendering itself is wired inside ComposeTab; the controller handles
    what leaves the window (files, dialogs, status messages).
    """

    def __init__(self, main_window: MainWindow):
        self.window = main_window
        self.compose_tab = main_window.compose_tab
        self.render_manager = self.compose_tab.render_manager

        self._connect_signals()

    def _connect_signals(self):
        self.compose_tab.download_requested.connect(self._on_download_requested)
        self.render_manager.composite_ready.connect(self._on_composite_ready)
        self.render_manager.render_failed.connect(self._on_render_failed)

    def _on_composite_ready(self, composite):
        self.window.show_message(f"Preview updated ({composite.size[0]} × {composite.size[1]})")

    def _on_render_failed(self, message: str):
        self.window.show_message(f"Render failed: {message}", 5000)

    def _on_download_requested(self):
        composite = self.render_manager.latest
        if composite is None:
            return

        directory = QFileDialog.getExistingDirectory(
            self.window,
            f"Save {EXPORT_FILENAME} to",
            self.window.export_directory()
        )
        if not directory:
            return

        try:
            target = save_composite(composite, directory)
        except OSError as e:
            logger.error("Export to %s failed: %s", directory, e)
            self.window.show_error("Download failed", str(e))
            return

        self.window.remember_export_directory(directory)
        self.window.show_message(f"Saved {target}", 5000)


def main():
    """Application entry point."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s")
    logging.getLogger("PIL").setLevel(logging.WARNING)

    app = QApplication(sys.argv)
    app.setApplicationName(MainWindow.APP_NAME)
    app.setApplicationVersion(MainWindow.APP_VERSION)
    app.setOrganizationName(MainWindow.SETTINGS_ORG)

    window = MainWindow()
    # Create controller (connects signals)
    controller = ComposerController(window)

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
