"""
Image Loader
============
Decodes image sources (file paths or raw bytes) into RGBA Pillow images.

Technical Notes:
- The image is fully loaded before returning, so truncated files fail here
  and not halfway through compositing
- EXIF orientation is applied (phone photos store rotation as metadata)
- Every failure is raised as DecodeError
"""

import io
import os
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError
from .params import ImageSource


def describe_source(source: ImageSource) -> str:
    """Human readable label for an image source."""
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return Path(os.fspath(source)).name


def decode_image(source: ImageSource) -> Image.Image:
    """
    Decode an image source into an RGBA image.

    Args:
        source: Path to an image file, or the encoded image bytes.

    Returns:
        A fully loaded RGBA image, upright according to its EXIF data.

    Raises:
        DecodeError: If the source is missing, unreadable, corrupt or
            larger than Pillow's decompression bomb limit.
    """
    label = describe_source(source)
    try:
        if isinstance(source, (bytes, bytearray)):
            opened = Image.open(io.BytesIO(source))
        else:
            opened = Image.open(os.fspath(source))
        with opened:
            opened.load()
            upright = ImageOps.exif_transpose(opened)
            return upright.convert("RGBA")
    except FileNotFoundError as e:
        raise DecodeError(f"Image not found: {label}", label) from e
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot decode image {label}: {e}", label) from e
