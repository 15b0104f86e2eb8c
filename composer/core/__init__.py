"""
Core Module - Pure Compositing Logic
====================================
This module contains no UI dependencies.
All layer compositing is implemented here with Pillow.
"""

from .compositor import Compositor, RenderedComposite
from .errors import CompositorError, DecodeError
from .export import EXPORT_FILENAME, save_composite
from .params import FONT_FAMILIES, CompositionParameters

__all__ = [
    "Compositor",
    "RenderedComposite",
    "CompositionParameters",
    "FONT_FAMILIES",
    "CompositorError",
    "DecodeError",
    "EXPORT_FILENAME",
    "save_composite",
]
