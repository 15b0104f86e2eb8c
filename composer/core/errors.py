"""
Compositor Errors
=================
Exceptions raised by the compositing pipeline.
"""


class CompositorError(Exception):
    """Base class for all compositing failures."""


class DecodeError(CompositorError):
    """
    An image source could not be decoded.

    Raised for missing files, unreadable formats and truncated data,
    so a failed decode is always reported instead of stalling the pipeline.
    """

    def __init__(self, message: str, source_label: str = ""):
        super().__init__(message)
        self.source_label = source_label
