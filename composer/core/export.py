"""
Composite Export
================
Saves the current composite to disk under a fixed file name.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .compositor import RenderedComposite

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "edited-image.jpg"


def save_composite(
        composite: Optional[RenderedComposite],
        directory: Union[str, Path]
) -> Optional[Path]:
    """
    Write the composite to `directory / edited-image.jpg`.

    An existing file with the same name is overwritten.

    Args:
        composite: The composite to save, or None if nothing was rendered yet.
        directory: Target directory, created if missing.

    Returns:
        Path of the written file, or None when there was nothing to save.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    if composite is None:
        return None

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / EXPORT_FILENAME
    target.write_bytes(composite.data)

    logger.info("Saved %dx%d composite to %s", composite.size[0], composite.size[1], target)
    return target
