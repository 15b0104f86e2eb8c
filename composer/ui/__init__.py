"""
UI Module - User Interface Components
=====================================
Contains all PyQt6 UI components for Layer Composer.

Architecture:
- widgets.py: Reusable UI components
- tab_compose.py: Controls and live preview
- main_window.py: Main application window
"""

from .main_window import MainWindow
from .tab_compose import ComposeTab
from .widgets import ColorButton, ImageDropZone, NoWheelSlider, PreviewCanvas

__all__ = [
    "ColorButton",
    "ImageDropZone",
    "NoWheelSlider",
    "PreviewCanvas",
    "ComposeTab",
    "MainWindow",
]
