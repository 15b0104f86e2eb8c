"""
Workers Module - Async Thread Management
========================================
QThread workers that keep compositing off the UI thread.

Components:
- RenderWorker: Runs one render request with cancellation checkpoints
- RenderDebouncer: Collapses bursts of parameter changes
- RenderManager: Generation-tagged scheduling and the single output slot
"""

from .render_worker import (
    RenderWorker, RenderRequest, RenderDebouncer, RenderManager,
    clear_decode_cache, clear_font_cache
)

__all__ = [
    "RenderWorker",
    "RenderRequest",
    "RenderDebouncer",
    "RenderManager",
    "clear_decode_cache",
    "clear_font_cache",
]
