"""
Tests for the render worker, debouncer and render manager.

Run with: python -m pytest tests/test_workers.py -v
"""

import io
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PIL import Image

from PyQt6.QtWidgets import QApplication
from PyQt6.QtCore import QEventLoop, QTimer

from composer.core import Compositor, CompositionParameters, RenderedComposite
from composer.core.compositor import effective_font_size
from composer.workers import (
    RenderWorker, RenderRequest, RenderDebouncer, RenderManager, clear_decode_cache,
    clear_font_cache
)
from composer.workers import render_worker

# Global QApplication instance
_app = None


def get_app():
    """Get or create QApplication instance."""
    global _app
    if _app is None:
        _app = QApplication.instance() or QApplication(sys.argv)
    return _app


def create_test_png(width: int = 320, height: int = 240) -> bytes:
    """Create a gradient PNG in memory."""
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, width, dtype=np.uint8)[np.newaxis, :]
    arr[..., 1] = np.linspace(0, 255, height, dtype=np.uint8)[:, np.newaxis]
    arr[..., 2] = 128

    buffer = io.BytesIO()
    Image.fromarray(arr, mode="RGB").save(buffer, format="PNG")
    return buffer.getvalue()


def wait_for_signal(signal, trigger=None, timeout_ms: int = 30000):
    """
    Wait for a Qt signal with timeout.

    The slot is connected before `trigger` runs, so a signal emitted
    right away is not missed.

    Returns:
        The value emitted by the signal, or None if timeout.
    """
    get_app()
    loop = QEventLoop()
    result = [None]

    def on_signal(*args):
        result[0] = args[0] if len(args) == 1 else args
        loop.quit()

    signal.connect(on_signal)

    # Setup timeout
    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout_ms)

    if trigger is not None:
        trigger()

    loop.exec()
    timer.stop()
    signal.disconnect(on_signal)

    return result[0]


def process_events(duration_ms: int):
    """Run the event loop for a fixed time."""
    loop = QEventLoop()
    QTimer.singleShot(duration_ms, loop.quit)
    loop.exec()


@pytest.fixture(autouse=True)
def fresh_cache():
    get_app()
    clear_decode_cache()
    yield
    clear_decode_cache()


@pytest.fixture
def manager():
    render_manager = RenderManager(debounce_ms=0)
    yield render_manager
    render_manager.shutdown()


# =============================================================================
# RenderWorker
# =============================================================================

def test_render_worker_emits_composite():
    params = CompositionParameters(base_image=create_test_png(), text="Worker")
    worker = RenderWorker(RenderRequest(params, generation=7))

    composite = wait_for_signal(worker.render_ready, worker.start)
    worker.wait()

    assert composite is not None, "Worker timed out"
    assert composite.generation == 7
    assert composite.size == (320, 240)
    assert composite.data == Compositor().render(params, generation=7).data


def test_render_worker_reports_bad_base():
    params = CompositionParameters(base_image=b"not an image")
    worker = RenderWorker(RenderRequest(params, generation=2))

    failure = wait_for_signal(worker.render_failed, worker.start)
    worker.wait()

    assert failure is not None, "Worker timed out"
    generation, message = failure
    assert generation == 2
    assert message.startswith("Base image:")


def test_render_worker_reports_bad_watermark():
    params = CompositionParameters(base_image=create_test_png(), watermark_image=b"junk")
    worker = RenderWorker(RenderRequest(params, generation=1))

    failure = wait_for_signal(worker.render_failed, worker.start)
    worker.wait()

    assert failure is not None, "Worker timed out"
    assert failure[1].startswith("Watermark image:")


def test_cancelled_worker_emits_nothing():
    params = CompositionParameters(base_image=create_test_png())
    worker = RenderWorker(RenderRequest(params, generation=1))
    emitted = []
    worker.render_ready.connect(emitted.append)

    worker.cancel()
    worker.start()
    worker.wait()
    process_events(50)

    assert worker.is_cancelled()
    assert emitted == []


def test_fonts_are_loaded_once_across_workers(monkeypatch):
    clear_font_cache()
    loads = []
    original_load = Compositor._load_font

    def counting_load(self, family, size):
        loads.append((family, size))
        return original_load(self, family, size)

    monkeypatch.setattr(Compositor, "_load_font", counting_load)
    params = CompositionParameters(base_image=create_test_png(), text="Cached")

    for generation in (1, 2, 3):
        composites = []
        worker = RenderWorker(RenderRequest(params, generation))
        worker.render_ready.connect(composites.append)
        # Run synchronously in this thread
        worker.run()
        assert len(composites) == 1

    assert loads == [("Roboto", round(effective_font_size(10, 240)))]
    clear_font_cache()


# =============================================================================
# Decode cache
# =============================================================================

def test_decode_cache_evicts_least_recently_used():
    compositor = Compositor()
    sources = [create_test_png(8 + i, 8) for i in range(render_worker.MAX_DECODE_CACHE_SIZE + 1)]

    for source in sources[:-1]:
        render_worker._get_cached_image(source, compositor)

    # Touch the oldest entry, then overflow the cache
    render_worker._get_cached_image(sources[0], compositor)
    render_worker._get_cached_image(sources[-1], compositor)

    cached = set(render_worker._decode_cache)
    assert render_worker._cache_key(sources[0]) in cached
    assert render_worker._cache_key(sources[1]) not in cached
    assert render_worker._cache_key(sources[-1]) in cached
    assert len(cached) == render_worker.MAX_DECODE_CACHE_SIZE


def test_decode_cache_returns_copies():
    compositor = Compositor()
    source = create_test_png(16, 16)

    first = render_worker._get_cached_image(source, compositor)
    first.putpixel((0, 0), (1, 2, 3, 4))
    second = render_worker._get_cached_image(source, compositor)

    assert second.getpixel((0, 0)) != (1, 2, 3, 4)


# =============================================================================
# RenderDebouncer
# =============================================================================

def test_debouncer_forwards_only_last_request():
    debouncer = RenderDebouncer(delay_ms=10)
    first = RenderRequest(CompositionParameters(text="first"), 1)
    last = RenderRequest(CompositionParameters(text="last"), 2)
    received = []
    debouncer.render_requested.connect(received.append)

    def burst():
        debouncer.request_render(first)
        debouncer.request_render(last)

    forwarded = wait_for_signal(debouncer.render_requested, burst, timeout_ms=2000)
    process_events(50)

    assert forwarded is last
    assert received == [last]


def test_debouncer_cancel_drops_pending():
    debouncer = RenderDebouncer(delay_ms=10)
    received = []
    debouncer.render_requested.connect(received.append)

    debouncer.request_render(RenderRequest(CompositionParameters(), 1))
    debouncer.cancel()
    process_events(50)

    assert received == []


# =============================================================================
# RenderManager
# =============================================================================

def test_manager_without_base_is_noop(manager):
    started = []
    manager.render_started.connect(lambda: started.append(True))

    assert manager.request_render(CompositionParameters(text="no base")) is False
    process_events(50)

    assert manager.latest is None
    assert manager.generation == 0
    assert started == []


def test_manager_publishes_last_request(manager):
    base = create_test_png()
    first = CompositionParameters(base_image=base, text="first")
    last = CompositionParameters(base_image=base, text="last", shadow_enabled=True)

    def burst():
        manager.request_render(first)
        manager.request_render(last)

    composite = wait_for_signal(manager.composite_ready, burst)

    assert composite is not None, "Render timed out"
    assert composite.generation == 2 == manager.generation
    assert manager.latest is composite
    assert composite.data == Compositor().render(last).data


def test_manager_drops_stale_results(manager):
    params = CompositionParameters(base_image=create_test_png())
    current = wait_for_signal(manager.composite_ready, lambda: manager.request_render(params))
    assert current is not None, "Render timed out"

    published = []
    failures = []
    manager.composite_ready.connect(published.append)
    manager.render_failed.connect(failures.append)

    stale = RenderedComposite(data=b"stale", size=(1, 1), generation=current.generation - 1)
    manager._on_render_ready(stale)
    manager._on_render_failed(current.generation - 1, "stale failure")

    assert manager.latest is current
    assert published == []
    assert failures == []


def test_manager_keeps_output_on_decode_failure(manager):
    good = CompositionParameters(base_image=create_test_png())
    composite = wait_for_signal(manager.composite_ready, lambda: manager.request_render(good))
    assert composite is not None, "Render timed out"

    bad = good.with_changes(watermark_image=b"corrupt")
    message = wait_for_signal(manager.render_failed, lambda: manager.request_render(bad))

    assert message is not None, "Render timed out"
    assert "Watermark image" in message
    assert manager.latest is composite


def test_manager_shutdown_waits_for_workers(manager):
    manager.request_render(CompositionParameters(base_image=create_test_png(640, 480)))
    process_events(20)

    manager.shutdown()

    assert not manager.is_busy()
