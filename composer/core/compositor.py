"""
Layer Compositor
================
Builds the final composite from a CompositionParameters value using Pillow.

Layer order (bottom to top):
1. Base image at `base_opacity`
2. Flat shade rectangle at `shade_opacity` (always painted, even at 0)
3. Centered multi-line white text, optional drop shadow
4. Watermark image anchored bottom-right with a 10px margin

Technical Notes:
- The surface starts fully transparent and is sized to the base image
- Font size is relative: (font_size / 100) * 70% of the surface height,
  so text keeps its proportion across differently sized base images
- Text is anchored on the baseline ("ms"), matching canvas fillText with
  textAlign=center
- The JPEG encode flattens over black, as a canvas JPEG export does
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from PIL import Image, ImageFont

from .loader import decode_image
from .paint import PaintStyle, ShadowStyle, fill_rect, fill_text_lines, paint_image
from .params import CompositionParameters, ImageSource

logger = logging.getLogger(__name__)

TEXT_HEIGHT_RATIO = 0.7
WATERMARK_MARGIN = 10
JPEG_QUALITY = 70
TEXT_COLOR = (255, 255, 255)
SHADOW = ShadowStyle(color=(0, 0, 0, 255), blur=10.0, offset=(2, 2))

# Candidate TrueType files per supported family, tried in order
FONT_FILES: Dict[str, Tuple[str, ...]] = {
    "Roboto": ("Roboto-Regular.ttf", "Roboto.ttf", "roboto.ttf"),
    "Montserrat": ("Montserrat-Regular.ttf", "Montserrat.ttf", "montserrat.ttf"),
    "Impact": ("impact.ttf", "Impact.ttf"),
}
FALLBACK_FONT_FILES = (
    "DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "arial.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class RenderedComposite:
    """An encoded composite, fully determined by the parameters that produced it."""
    data: bytes
    size: Tuple[int, int]
    generation: int = 0
    mime_type: str = "image/jpeg"


def effective_font_size(font_size: float, surface_height: int) -> float:
    """Pixel font size for a relative size (10-100) on a surface of the given height."""
    return (font_size / 100) * TEXT_HEIGHT_RATIO * surface_height


def split_lines(text: str) -> List[str]:
    """Split text on any line break. An empty string is a single empty line."""
    return _LINE_BREAK.split(text)


def line_baselines(count: int, line_height: float, surface_height: int) -> List[float]:
    """
    Baseline y for each line so the block is centered on the surface midpoint.

    The first baseline sits at H/2 - (count - 1) * line_height / 2 and each
    following line advances by exactly one line height.
    """
    first = surface_height / 2 - (count - 1) * line_height / 2
    return [first + i * line_height for i in range(count)]


def watermark_box(
        surface_size: Tuple[int, int],
        natural_size: Tuple[int, int],
        scale: float
) -> Tuple[int, int, int, int]:
    """
    Compute (x, y, width, height) of the scaled watermark.

    The bottom-right corner of the watermark is WATERMARK_MARGIN pixels
    from the bottom-right corner of the surface on both axes.
    """
    surface_w, surface_h = surface_size
    width = max(1, int(round(natural_size[0] * scale)))
    height = max(1, int(round(natural_size[1] * scale)))
    x = surface_w - width - WATERMARK_MARGIN
    y = surface_h - height - WATERMARK_MARGIN
    return x, y, width, height


def flatten(surface: Image.Image) -> Image.Image:
    """Flatten an RGBA surface over black into an RGB image."""
    background = Image.new("RGB", surface.size, (0, 0, 0))
    background.paste(surface, mask=surface.getchannel("A"))
    return background


class Compositor:
    """
    Renders CompositionParameters into a JPEG composite.

    `render()` runs the whole pipeline synchronously. The render worker
    calls `decode()`, `compose()` and `encode()` separately so it can stop
    between the stages when its result is no longer wanted.
    """

    def __init__(self, font_dir: Optional[Union[str, Path]] = None):
        """
        Args:
            font_dir: Optional directory holding the TrueType files of the
                      supported families. Searched before system fonts.
        """
        self._font_dir = Path(font_dir) if font_dir else None
        self._cached_fonts: Dict[Tuple[str, int], ImageFont.ImageFont] = {}

    def _load_font(self, family: str, size: int) -> ImageFont.ImageFont:
        candidates = []
        for name in FONT_FILES.get(family, ()):
            if self._font_dir is not None:
                candidates.append(str(self._font_dir / name))
            candidates.append(name)
        candidates.extend(FALLBACK_FONT_FILES)

        for index, candidate in enumerate(candidates):
            try:
                font = ImageFont.truetype(candidate, size)
            except OSError:
                continue
            if index >= len(candidates) - len(FALLBACK_FONT_FILES):
                logger.warning("Font %s not found, using %s", family, candidate)
            return font

        logger.warning("No TrueType font found for %s, using Pillow default", family)
        return ImageFont.load_default(size)

    def get_font(self, family: str, size: int) -> ImageFont.ImageFont:
        """Get or create a cached font for the family at the given pixel size."""
        key = (family, size)
        if key not in self._cached_fonts:
            self._cached_fonts[key] = self._load_font(family, size)
        return self._cached_fonts[key]

    def clear_font_cache(self):
        self._cached_fonts.clear()

    def decode(self, source: ImageSource) -> Image.Image:
        return decode_image(source)

    def compose(
            self,
            params: CompositionParameters,
            base: Image.Image,
            watermark: Optional[Image.Image] = None
    ) -> Image.Image:
        """
        Paint every layer onto a new surface sized to the base image.

        Args:
            params: Composition inputs. Normalized here, so raw UI values are fine.
            base: Decoded base image.
            watermark: Decoded watermark image, or None to skip the layer.

        Returns:
            The RGBA surface.
        """
        params = params.normalized()
        width, height = base.size
        surface = Image.new("RGBA", (width, height), (0, 0, 0, 0))

        # Base
        paint_image(surface, base, (0, 0), PaintStyle(opacity=params.base_opacity))

        # Shade
        fill_rect(
            surface,
            (0, 0, width, height),
            PaintStyle(color=params.shade_color, opacity=params.shade_opacity)
        )

        # Text
        font_px = effective_font_size(params.font_size, height)
        lines = split_lines(params.text)
        baselines = line_baselines(len(lines), font_px, height)
        text_style = PaintStyle(
            color=TEXT_COLOR,
            opacity=1.0,
            shadow=SHADOW if params.shadow_enabled else None
        )
        font = self.get_font(params.font_family, max(1, int(round(font_px))))
        fill_text_lines(
            surface,
            [(line, (width / 2, y)) for line, y in zip(lines, baselines)],
            font,
            text_style
        )

        # Watermark
        if watermark is not None:
            x, y, wm_w, wm_h = watermark_box(surface.size, watermark.size, params.watermark_scale)
            scaled = watermark.resize((wm_w, wm_h), Image.Resampling.LANCZOS)
            paint_image(surface, scaled, (x, y), PaintStyle(opacity=params.watermark_opacity))

        return surface

    def encode(
            self,
            surface: Image.Image,
            generation: int = 0,
            quality: int = JPEG_QUALITY
    ) -> RenderedComposite:
        """Encode the surface as a lossy JPEG composite."""
        buffer = io.BytesIO()
        flatten(surface).save(buffer, format="JPEG", quality=quality)
        return RenderedComposite(
            data=buffer.getvalue(),
            size=surface.size,
            generation=generation
        )

    def render(
            self,
            params: CompositionParameters,
            generation: int = 0
    ) -> Optional[RenderedComposite]:
        """
        Run the full pipeline.

        Returns:
            The composite, or None when no base image is set.

        Raises:
            DecodeError: If the base or watermark image cannot be decoded.
        """
        if not params.has_base:
            return None

        base = self.decode(params.base_image)
        watermark = self.decode(params.watermark_image) if params.has_watermark else None
        return self.encode(self.compose(params, base, watermark), generation)
