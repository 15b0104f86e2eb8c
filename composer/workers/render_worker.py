"""
Render Worker - Background Compositing with Stale-Result Protection
===================================================================

Every parameter change from the UI triggers a full re-render. Image decoding
takes an unpredictable amount of time, so an older render can finish after
a newer one. Publishing results in completion order would then show stale
output.

THE SOLUTION (Generation Tagging):
- RenderManager numbers every accepted request (the "generation")
- Each RenderWorker carries its generation through the pipeline
- The worker checks for cancellation after every decode (the slow steps)
- The manager only publishes a result whose generation is still current
- Result: "last request wins", never "last completion wins"

PIPELINE (inside the worker thread):
  decode base -> checkpoint -> decode watermark -> checkpoint
  -> compose -> encode -> checkpoint -> emit

Rapid slider drags are also collapsed by RenderDebouncer before a worker
is ever started.
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Set, Tuple, Union

from PIL import Image, ImageFont
from PyQt6.QtCore import QMutex, QMutexLocker, QObject, QThread, QTimer, pyqtSignal

from composer.core.compositor import Compositor, RenderedComposite
from composer.core.errors import DecodeError
from composer.core.params import CompositionParameters, ImageSource

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class RenderRequest:
    """One render job: the parameters plus the generation that requested them."""
    params: CompositionParameters
    generation: int


# =============================================================================
# DECODE CACHE (Shared across all workers)
# =============================================================================

# Maps source identity -> decoded RGBA image, least recently used first.
# Avoids decoding the same base image again on every slider move.
_decode_cache: Dict[str, Image.Image] = {}
_decode_cache_lock = QMutex()

# Global font cache: shared by every worker's Compositor.
# Keyed by (font_dir, family, pixel size) so a font is searched for and
# loaded once, not once per render.
_global_font_cache: Dict[Tuple[Optional[str], str, int], ImageFont.ImageFont] = {}
_font_cache_lock = QMutex()

MAX_DECODE_CACHE_SIZE = 10
MAX_FONT_CACHE_SIZE = 50


def _cache_key(source: ImageSource) -> Optional[str]:
    """
    Identity of an image source.

    Bytes are keyed by content hash, files by path and modification time so
    an edited file is decoded again. Returns None for unreachable files,
    which are never cached.
    """
    if isinstance(source, (bytes, bytearray)):
        return "sha1:" + hashlib.sha1(source).hexdigest()
    path = os.fspath(source)
    try:
        mtime = os.stat(path).st_mtime_ns
    except OSError:
        return None
    return f"{path}:{mtime}"


def _get_cached_image(source: ImageSource, compositor: Compositor) -> Image.Image:
    """
    Get or decode an image source.

    Returns a COPY so the cached image is never mutated.

    Raises:
        DecodeError: If the source cannot be decoded.
    """
    key = _cache_key(source)

    if key is not None:
        with QMutexLocker(_decode_cache_lock):
            if key in _decode_cache:
                logger.debug("Decode cache hit: %s", key)
                # Move to the most recently used end
                image = _decode_cache.pop(key)
                _decode_cache[key] = image
                return image.copy()

    image = compositor.decode(source)

    if key is not None:
        with QMutexLocker(_decode_cache_lock):
            if len(_decode_cache) >= MAX_DECODE_CACHE_SIZE:
                oldest_key = next(iter(_decode_cache))
                del _decode_cache[oldest_key]
                logger.debug("Decode cache evicted: %s", oldest_key)
            _decode_cache[key] = image.copy()

    return image


def clear_decode_cache():
    """Drop every decoded image (call when the base or watermark is replaced)."""
    with QMutexLocker(_decode_cache_lock):
        _decode_cache.clear()


def clear_font_cache():
    """Clear the global font cache."""
    with QMutexLocker(_font_cache_lock):
        _global_font_cache.clear()


class _SharedFontCompositor(Compositor):
    """Compositor that looks fonts up in the global, mutex-guarded cache."""

    def get_font(self, family: str, size: int) -> ImageFont.ImageFont:
        font_dir = str(self._font_dir) if self._font_dir is not None else None
        key = (font_dir, family, size)

        with QMutexLocker(_font_cache_lock):
            font = _global_font_cache.get(key)
            if font is None:
                if len(_global_font_cache) >= MAX_FONT_CACHE_SIZE:
                    del _global_font_cache[next(iter(_global_font_cache))]
                font = self._load_font(family, size)
                _global_font_cache[key] = font

        return font


# =============================================================================
# RENDER WORKER
# =============================================================================

class RenderWorker(QThread):
    """
    Worker thread that renders one RenderRequest.

    CANCELLATION:
    - `cancel()` sets a flag checked after each slow stage
    - A cancelled worker exits quietly without emitting anything

    SIGNALS:
    - render_ready(RenderedComposite): the encoded composite
    - render_failed(int, str): generation and error message
    """

    render_ready = pyqtSignal(object)
    render_failed = pyqtSignal(int, str)

    def __init__(
            self,
            request: RenderRequest,
            font_dir: Optional[Union[str, Path]] = None,
            parent=None
    ):
        super().__init__(parent)
        self.request = request
        self._font_dir = font_dir
        self._is_cancelled = False

    @property
    def generation(self) -> int:
        return self.request.generation

    def cancel(self):
        """Request cancellation of this worker."""
        self._is_cancelled = True

    def is_cancelled(self) -> bool:
        return self._is_cancelled

    def run(self):
        params = self.request.params
        generation = self.request.generation
        compositor = _SharedFontCompositor(self._font_dir)

        try:
            if self._is_cancelled:
                return

            # === STAGE 1: Base image ===
            try:
                base = _get_cached_image(params.base_image, compositor)
            except DecodeError as e:
                self.render_failed.emit(generation, f"Base image: {e}")
                return

            if self._is_cancelled:
                return

            # === STAGE 2: Watermark image ===
            watermark = None
            if params.has_watermark:
                try:
                    watermark = _get_cached_image(params.watermark_image, compositor)
                except DecodeError as e:
                    self.render_failed.emit(generation, f"Watermark image: {e}")
                    return

                if self._is_cancelled:
                    return

            # === STAGE 3: Compose and encode ===
            surface = compositor.compose(params, base, watermark)
            composite = compositor.encode(surface, generation)

            if self._is_cancelled:
                return

            self.render_ready.emit(composite)

        except Exception as e:
            logger.exception("Render %d failed", generation)
            if not self._is_cancelled:
                self.render_failed.emit(generation, f"Render failed: {e}")


# =============================================================================
# DEBOUNCER
# =============================================================================

class RenderDebouncer(QObject):
    """
    Collapse bursts of render requests into one.

    A slider drag emits dozens of valueChanged events per second.
    Only the LAST request inside the delay window is forwarded.
    """

    render_requested = pyqtSignal(object)

    def __init__(self, delay_ms: int = 50, parent=None):
        super().__init__(parent)
        self._delay_ms = delay_ms
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._pending: Optional[RenderRequest] = None

    def request_render(self, request: RenderRequest):
        """Queue a request, restarting the delay window."""
        self._pending = request
        self._timer.stop()
        self._timer.start(self._delay_ms)

    def cancel(self):
        """Drop any pending request."""
        self._timer.stop()
        self._pending = None

    def _on_timeout(self):
        if self._pending is not None:
            request, self._pending = self._pending, None
            self.render_requested.emit(request)


# =============================================================================
# RENDER MANAGER
# =============================================================================

class RenderManager(QObject):
    """
    Owns the single output slot and schedules render workers.

    RESPONSIBILITIES:
    1. Number each request (generation) and debounce them
    2. Cancel in-flight workers when a newer request starts
    3. Publish only results of the current generation
    4. Keep the previous output when a render fails or there is no base image

    USAGE:
        manager = RenderManager(debounce_ms=50)
        manager.composite_ready.connect(on_composite)
        manager.request_render(params)
    """

    composite_ready = pyqtSignal(object)  # RenderedComposite
    render_failed = pyqtSignal(str)
    render_started = pyqtSignal()

    def __init__(
            self,
            debounce_ms: int = 50,
            font_dir: Optional[Union[str, Path]] = None,
            parent=None
    ):
        super().__init__(parent)
        self._font_dir = font_dir
        self._generation = 0
        self._latest: Optional[RenderedComposite] = None
        self._workers: Set[RenderWorker] = set()

        self._debouncer = RenderDebouncer(debounce_ms, self)
        self._debouncer.render_requested.connect(self._start_render_worker)

    @property
    def latest(self) -> Optional[RenderedComposite]:
        """The most recently published composite, or None."""
        return self._latest

    @property
    def generation(self) -> int:
        return self._generation

    def is_busy(self) -> bool:
        return any(worker.isRunning() for worker in self._workers)

    def request_render(self, params: CompositionParameters) -> bool:
        """
        Request a render of `params`.

        Without a base image this is a no-op: nothing is emitted and the
        current output stays as it is.

        Returns:
            True if a render was scheduled.
        """
        if not params.has_base:
            logger.debug("No base image set, render skipped")
            return False

        self._generation += 1
        self._debouncer.request_render(RenderRequest(params, self._generation))
        return True

    def cancel(self):
        """Cancel the pending request and every in-flight worker."""
        self._debouncer.cancel()
        for worker in self._workers:
            worker.cancel()

    def shutdown(self, timeout_ms: int = 2000):
        """Cancel everything and wait for running workers to exit."""
        self.cancel()
        for worker in list(self._workers):
            worker.wait(timeout_ms)

    def clear_cache(self):
        clear_decode_cache()

    def _start_render_worker(self, request: RenderRequest):
        if request.generation != self._generation:
            return

        for worker in self._workers:
            worker.cancel()

        self.render_started.emit()

        worker = RenderWorker(request, self._font_dir)
        worker.render_ready.connect(self._on_render_ready)
        worker.render_failed.connect(self._on_render_failed)
        worker.finished.connect(self._on_worker_finished)
        self._workers.add(worker)
        worker.start()

    def _on_render_ready(self, composite: RenderedComposite):
        if composite.generation != self._generation:
            logger.debug(
                "Dropped stale render %d (current %d)",
                composite.generation, self._generation
            )
            return

        self._latest = composite
        logger.info(
            "Render %d ready: %dx%d, %d bytes",
            composite.generation, composite.size[0], composite.size[1], len(composite.data)
        )
        self.composite_ready.emit(composite)

    def _on_render_failed(self, generation: int, message: str):
        if generation != self._generation:
            logger.debug("Dropped stale failure of render %d: %s", generation, message)
            return

        logger.warning("Render %d failed: %s", generation, message)
        self.render_failed.emit(message)

    def _on_worker_finished(self):
        worker = self.sender()
        if isinstance(worker, RenderWorker) and worker in self._workers:
            self._workers.discard(worker)
            worker.deleteLater()
