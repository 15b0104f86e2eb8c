"""
Composition Parameters
======================
The single source of truth for one composite.

Every control in the UI maps to exactly one field here. The compositor
never reads the raw values directly: it works on `normalized()`, which
clamps every number into its documented range.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple, Union

from PIL import ImageColor

logger = logging.getLogger(__name__)

# A file path or the raw encoded bytes of an image
ImageSource = Union[str, os.PathLike, bytes]

FONT_FAMILIES = ("Roboto", "Montserrat", "Impact")

# Documented ranges (inclusive)
OPACITY_RANGE = (0.0, 1.0)
WATERMARK_SCALE_RANGE = (0.1, 1.0)
FONT_SIZE_RANGE = (10.0, 100.0)

# Defaults match the initial state of the editor controls
DEFAULT_BASE_OPACITY = 1.0
DEFAULT_SHADE_COLOR = (0, 0, 0)
DEFAULT_SHADE_OPACITY = 0.0
DEFAULT_WATERMARK_OPACITY = 1.0
DEFAULT_WATERMARK_SCALE = 0.2
DEFAULT_FONT_FAMILY = FONT_FAMILIES[0]
DEFAULT_FONT_SIZE = 10.0


def _clamp(name: str, value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    clamped = max(low, min(high, float(value)))
    if clamped != value:
        logger.debug("Clamped %s from %s to %s", name, value, clamped)
    return clamped


def parse_color(color: Union[str, Tuple[int, ...]]) -> Tuple[int, int, int]:
    """
    Convert a color value to an RGB tuple.

    Accepts any string Pillow understands (e.g. "#1a2b3c", "white") or
    a tuple of at least three channels. Channels are clamped to 0-255.

    Raises:
        ValueError: If the string is not a recognised color.
    """
    if isinstance(color, str):
        rgb = ImageColor.getrgb(color)
    else:
        rgb = tuple(color)
    if len(rgb) < 3:
        raise ValueError(f"Color needs three channels, got {color!r}")
    return tuple(max(0, min(255, int(c))) for c in rgb[:3])


@dataclass(frozen=True)
class CompositionParameters:
    """Inputs that fully determine a rendered composite."""
    base_image: Optional[ImageSource] = None
    watermark_image: Optional[ImageSource] = None
    base_opacity: float = DEFAULT_BASE_OPACITY
    shade_color: Tuple[int, int, int] = DEFAULT_SHADE_COLOR
    shade_opacity: float = DEFAULT_SHADE_OPACITY
    watermark_opacity: float = DEFAULT_WATERMARK_OPACITY
    watermark_scale: float = DEFAULT_WATERMARK_SCALE
    text: str = ""
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = DEFAULT_FONT_SIZE
    shadow_enabled: bool = False

    @property
    def has_base(self) -> bool:
        return self.base_image is not None

    @property
    def has_watermark(self) -> bool:
        return self.watermark_image is not None

    def with_changes(self, **changes) -> "CompositionParameters":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def normalized(self) -> "CompositionParameters":
        """
        Return a copy with every value inside its documented range.

        Out-of-range numbers are clamped, an unknown font family falls
        back to the default family and the shade color is parsed to RGB.
        """
        font_family = self.font_family
        if font_family not in FONT_FAMILIES:
            logger.debug("Unknown font family %r, using %s", font_family, DEFAULT_FONT_FAMILY)
            font_family = DEFAULT_FONT_FAMILY

        return replace(
            self,
            base_opacity=_clamp("base_opacity", self.base_opacity, OPACITY_RANGE),
            shade_color=parse_color(self.shade_color),
            shade_opacity=_clamp("shade_opacity", self.shade_opacity, OPACITY_RANGE),
            watermark_opacity=_clamp("watermark_opacity", self.watermark_opacity, OPACITY_RANGE),
            watermark_scale=_clamp("watermark_scale", self.watermark_scale, WATERMARK_SCALE_RANGE),
            text=self.text or "",
            font_family=font_family,
            font_size=_clamp("font_size", self.font_size, FONT_SIZE_RANGE),
            shadow_enabled=bool(self.shadow_enabled),
        )

    def describe(self) -> str:
        """Short one-line summary for log messages (image bytes are not dumped)."""
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bytes):
                value = f"<{len(value)} bytes>"
            parts.append(f"{f.name}={value!r}")
        return ", ".join(parts)
