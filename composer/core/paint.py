"""
Paint Primitives
================
Draw calls used by the compositor. Each call receives an explicit,
immutable PaintStyle, so no color, opacity or shadow setting survives from
one draw call to the next.

All primitives composite onto the surface in place with
`Image.alpha_composite`, so the surface must be RGBA.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

# (text, (x, y)) with x at the horizontal middle and y on the baseline
TextLine = Tuple[str, Tuple[float, float]]


@dataclass(frozen=True)
class ShadowStyle:
    """Drop shadow settings. `blur` follows the canvas convention (sigma = blur / 2)."""
    color: Tuple[int, int, int, int] = (0, 0, 0, 255)
    blur: float = 10.0
    offset: Tuple[int, int] = (2, 2)


@dataclass(frozen=True)
class PaintStyle:
    """Fill color, opacity and optional shadow for a single draw call."""
    color: Tuple[int, int, int] = (255, 255, 255)
    opacity: float = 1.0
    shadow: Optional[ShadowStyle] = None

    @property
    def alpha(self) -> int:
        return int(round(255 * max(0.0, min(1.0, self.opacity))))


def _scale_alpha(mask: Image.Image, factor: float) -> Image.Image:
    """Multiply an L-mode mask by a factor in [0, 1]."""
    if factor >= 1.0:
        return mask
    return mask.point(lambda v: int(round(v * factor)))


def paint_image(
        surface: Image.Image,
        image: Image.Image,
        dest: Tuple[int, int],
        style: PaintStyle
) -> None:
    """
    Composite `image` onto `surface` with its top-left corner at `dest`.

    The destination may be negative or extend past the surface; the image
    is clipped to the surface bounds.
    """
    layer_image = image if image.mode == "RGBA" else image.convert("RGBA")
    if style.opacity < 1.0:
        layer_image = layer_image.copy()
        layer_image.putalpha(_scale_alpha(layer_image.getchannel("A"), style.opacity))

    layer = Image.new("RGBA", surface.size, (0, 0, 0, 0))
    layer.paste(layer_image, (int(dest[0]), int(dest[1])))
    surface.alpha_composite(layer)


def fill_rect(
        surface: Image.Image,
        box: Tuple[int, int, int, int],
        style: PaintStyle
) -> None:
    """Composite a solid rectangle (left, top, right, bottom) onto `surface`."""
    layer = Image.new("RGBA", surface.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).rectangle(
        (box[0], box[1], box[2] - 1, box[3] - 1),
        fill=(*style.color, style.alpha)
    )
    surface.alpha_composite(layer)


def _text_mask(
        size: Tuple[int, int],
        lines: Sequence[TextLine],
        font: ImageFont.ImageFont
) -> Image.Image:
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    for text, (x, y) in lines:
        if text:
            draw.text((x, y), text, font=font, fill=255, anchor="ms")
    return mask


def _solid_layer(
        size: Tuple[int, int],
        color: Tuple[int, ...],
        mask: Image.Image
) -> Image.Image:
    layer = Image.new("RGBA", size, (*color[:3], 0))
    layer.putalpha(mask)
    return layer


def fill_text_lines(
        surface: Image.Image,
        lines: Sequence[TextLine],
        font: ImageFont.ImageFont,
        style: PaintStyle
) -> None:
    """
    Draw text lines anchored at their horizontal middle and baseline.

    When the style carries a shadow, the shadow is composited first,
    then the text on top of it.
    """
    if not any(text for text, _ in lines):
        return

    mask = _text_mask(surface.size, lines, font)

    if style.shadow is not None:
        shadow = style.shadow
        shifted = Image.new("L", surface.size, 0)
        shifted.paste(mask, shadow.offset)
        if shadow.blur > 0:
            shifted = shifted.filter(ImageFilter.GaussianBlur(shadow.blur / 2))
        shadow_alpha = _scale_alpha(shifted, shadow.color[3] / 255 * style.opacity)
        surface.alpha_composite(_solid_layer(surface.size, shadow.color, shadow_alpha))

    text_alpha = _scale_alpha(mask, style.opacity)
    surface.alpha_composite(_solid_layer(surface.size, style.color, text_alpha))
