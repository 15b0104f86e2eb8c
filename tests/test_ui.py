"""
Tests for the compose tab wiring.

Run with: python -m pytest tests/test_ui.py -v
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image

from composer.core import CompositionParameters, FONT_FAMILIES
from composer.ui import ComposeTab
from composer.workers import RenderManager, clear_decode_cache

from test_workers import get_app, process_events, wait_for_signal


@pytest.fixture
def tab():
    get_app()
    clear_decode_cache()
    compose_tab = ComposeTab(RenderManager(debounce_ms=0))
    yield compose_tab
    compose_tab.render_manager.shutdown()


def test_initial_controls_match_default_parameters(tab):
    params = tab.get_parameters()
    defaults = CompositionParameters()

    assert params.base_image is None
    assert params.base_opacity == pytest.approx(defaults.base_opacity)
    assert params.shade_opacity == pytest.approx(defaults.shade_opacity)
    assert params.watermark_opacity == pytest.approx(defaults.watermark_opacity)
    assert params.watermark_scale == pytest.approx(defaults.watermark_scale)
    assert params.font_size == pytest.approx(defaults.font_size)
    assert params.font_family == defaults.font_family
    assert params.text == ""
    assert params.shadow_enabled is False
    assert [tab.font_combo.itemText(i) for i in range(tab.font_combo.count())] == list(FONT_FAMILIES)


def test_controls_feed_parameters(tab):
    tab.base_opacity_spin.setValue(40)
    tab.font_size_spin.setValue(55)
    tab.watermark_scale_spin.setValue(75)
    tab.text_edit.setPlainText("one\ntwo")
    tab.shadow_check.setChecked(True)

    params = tab.get_parameters()

    assert params.base_opacity == pytest.approx(0.4)
    assert params.font_size == pytest.approx(55)
    assert params.watermark_scale == pytest.approx(0.75)
    assert params.text == "one\ntwo"
    assert params.shadow_enabled is True


def test_controls_without_base_leave_preview_empty(tab):
    tab.text_edit.setPlainText("no base yet")
    process_events(50)

    assert tab.latest_composite() is None
    assert not tab.download_btn.isEnabled()
    assert not tab.preview_canvas.has_preview()


def test_selecting_base_renders_preview(tab, tmp_path):
    base_path = tmp_path / "base.png"
    Image.new("RGB", (200, 100), (30, 60, 90)).save(base_path)

    composite = wait_for_signal(
        tab.render_manager.composite_ready,
        lambda: tab._on_base_selected(base_path)
    )

    assert composite is not None, "Render timed out"
    assert tab.latest_composite() is composite
    assert tab.download_btn.isEnabled()
    assert tab.preview_canvas.has_preview()
    assert tab.get_image_directory() == str(tmp_path)
