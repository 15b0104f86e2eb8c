"""
Layer Composer Application Package
==================================
A desktop tool that layers a base image, a color shade, centered text and
a watermark, then exports the composite as a JPEG.

Modules:
    - core: Pure compositing logic (no UI dependencies)
    - workers: QThread workers for background rendering
    - ui: PyQt6 user interface components

Usage:
    from composer.core import Compositor, CompositionParameters
    from composer.workers import RenderManager
    from composer.ui import MainWindow
"""

__version__ = "1.0.0"
__app_name__ = "Layer Composer"

from .core import (
    Compositor, RenderedComposite, CompositionParameters, FONT_FAMILIES,
    CompositorError, DecodeError, EXPORT_FILENAME, save_composite
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "Compositor",
    "RenderedComposite",
    "CompositionParameters",
    "FONT_FAMILIES",
    "CompositorError",
    "DecodeError",
    "EXPORT_FILENAME",
    "save_composite",
]
