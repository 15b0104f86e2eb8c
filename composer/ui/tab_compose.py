"""
Compose Tab - Controls + Live Preview
=====================================

Layout:
┌──────────────────────────┬──────────────────────────────────────────┐
│   CONTROLS               │              PREVIEW                     │
│                          │                                          │
│  Base image  [drop zone] │  ┌────────────────────────────────────┐  │
│  Base opacity  ───●───   │  │                                    │  │
│  Shade  [■] ───●───      │  │        TRANSPARENCY GRID           │  │
│  Text  [            ]    │  │          PREVIEW CANVAS            │  │
│  Font [Roboto ▾] Size ─● │  │                                    │  │
│  [x] Shadow              │  └────────────────────────────────────┘  │
│  Watermark [drop zone]   │  ┌────────────────────────────────────┐  │
│  Opacity ─●─  Scale ─●─  │  │  Info bar            [⤓ Download]  │  │
│                          │  └────────────────────────────────────┘  │
└──────────────────────────┴──────────────────────────────────────────┘

Every control change builds a fresh CompositionParameters and hands it to
the RenderManager, which debounces and renders in the background.
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QSpinBox, QPushButton,
    QSplitter, QFrame, QScrollArea, QComboBox, QCheckBox, QPlainTextEdit
)

from composer.core.compositor import RenderedComposite
from composer.core.params import (
    FONT_FAMILIES, CompositionParameters, DEFAULT_BASE_OPACITY,
    DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, DEFAULT_SHADE_COLOR,
    DEFAULT_SHADE_OPACITY, DEFAULT_WATERMARK_OPACITY, DEFAULT_WATERMARK_SCALE
)
from composer.workers.render_worker import RenderManager
from .widgets import ColorButton, ImageDropZone, NoWheelSlider, PreviewCanvas


class ComposeTab(QWidget):
    """
    Compose view: parameter controls on the left, preview on the right.

    Signals:
        download_requested(): The user asked to save the current composite.
    """

    download_requested = pyqtSignal()

    def __init__(self, render_manager: Optional[RenderManager] = None,
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._render_manager = render_manager or RenderManager(debounce_ms=50, parent=self)
        self._base_path: Optional[Path] = None
        self._watermark_path: Optional[Path] = None
        self._setup_ui()
        self._connect_signals()

    @property
    def render_manager(self) -> RenderManager:
        return self._render_manager

    def _setup_ui(self):
        main_layout = QHBoxLayout(self)
        main_layout.setSpacing(0)
        main_layout.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.setChildrenCollapsible(False)
        splitter.setHandleWidth(1)
        splitter.addWidget(self._create_control_panel())
        splitter.addWidget(self._create_preview_panel())
        splitter.setSizes([360, 700])
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)

        main_layout.addWidget(splitter)

    # ========================================================================
    # CONTROLS
    # ========================================================================

    def _create_control_panel(self) -> QFrame:
        panel = QFrame()
        panel.setObjectName("controlPanel")
        panel.setMinimumWidth(320)
        panel.setMaximumWidth(440)

        outer = QVBoxLayout(panel)
        outer.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(QFrame.Shape.NoFrame)

        content = QWidget()
        layout = QVBoxLayout(content)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(14)

        # Base image
        self.base_drop = ImageDropZone("Drop the base image here")
        layout.addWidget(self._create_field_group("Base image", self.base_drop))

        base_opacity, self.base_opacity_slider, self.base_opacity_spin = self._create_slider(
            "Base opacity", 0, 100, int(DEFAULT_BASE_OPACITY * 100), " %"
        )
        layout.addWidget(base_opacity)

        # Shade
        shade_row = QWidget()
        shade_layout = QHBoxLayout(shade_row)
        shade_layout.setContentsMargins(0, 0, 0, 0)
        shade_layout.setSpacing(10)
        self.shade_color_button = ColorButton(DEFAULT_SHADE_COLOR)
        self.shade_color_button.setFixedWidth(72)
        shade_layout.addWidget(self.shade_color_button)
        shade_opacity, self.shade_opacity_slider, self.shade_opacity_spin = self._create_slider(
            "Shade opacity", 0, 100, int(DEFAULT_SHADE_OPACITY * 100), " %"
        )
        shade_layout.addWidget(shade_opacity, 1)
        layout.addWidget(self._create_field_group("Shade", shade_row))

        # Text
        self.text_edit = QPlainTextEdit()
        self.text_edit.setPlaceholderText("Enter text here")
        self.text_edit.setFixedHeight(90)
        layout.addWidget(self._create_field_group("Text", self.text_edit))

        font_row = QWidget()
        font_layout = QHBoxLayout(font_row)
        font_layout.setContentsMargins(0, 0, 0, 0)
        font_layout.setSpacing(10)
        self.font_combo = QComboBox()
        self.font_combo.addItems(FONT_FAMILIES)
        self.font_combo.setCurrentText(DEFAULT_FONT_FAMILY)
        font_layout.addWidget(self.font_combo)
        self.shadow_check = QCheckBox("Shadow")
        font_layout.addWidget(self.shadow_check)
        font_layout.addStretch()
        layout.addWidget(self._create_field_group("Font", font_row))

        font_size, self.font_size_slider, self.font_size_spin = self._create_slider(
            "Size", 10, 100, int(DEFAULT_FONT_SIZE), ""
        )
        layout.addWidget(font_size)

        # Watermark
        watermark_row = QWidget()
        watermark_layout = QHBoxLayout(watermark_row)
        watermark_layout.setContentsMargins(0, 0, 0, 0)
        watermark_layout.setSpacing(8)
        self.watermark_drop = ImageDropZone("Drop a watermark here")
        watermark_layout.addWidget(self.watermark_drop, 1)
        self.watermark_clear_btn = QPushButton("✕")
        self.watermark_clear_btn.setObjectName("iconButton")
        self.watermark_clear_btn.setFixedSize(40, 40)
        self.watermark_clear_btn.setToolTip("Remove watermark")
        self.watermark_clear_btn.setEnabled(False)
        watermark_layout.addWidget(self.watermark_clear_btn)
        layout.addWidget(self._create_field_group("Watermark", watermark_row))

        wm_opacity, self.watermark_opacity_slider, self.watermark_opacity_spin = self._create_slider(
            "Watermark opacity", 0, 100, int(DEFAULT_WATERMARK_OPACITY * 100), " %"
        )
        layout.addWidget(wm_opacity)

        wm_scale, self.watermark_scale_slider, self.watermark_scale_spin = self._create_slider(
            "Watermark scale", 10, 100, int(DEFAULT_WATERMARK_SCALE * 100), " %"
        )
        layout.addWidget(wm_scale)

        layout.addStretch()
        scroll.setWidget(content)
        outer.addWidget(scroll)
        return panel

    # ========================================================================
    # PREVIEW
    # ========================================================================

    def _create_preview_panel(self) -> QFrame:
        panel = QFrame()
        panel.setObjectName("previewPanel")

        layout = QVBoxLayout(panel)
        layout.setContentsMargins(8, 16, 16, 16)
        layout.setSpacing(12)

        self.preview_canvas = PreviewCanvas()
        layout.addWidget(self.preview_canvas, 1)

        bottom = QHBoxLayout()
        bottom.setSpacing(12)

        self.preview_info = QLabel("◇ Adjust the controls to update the preview")
        self.preview_info.setObjectName("previewInfoBar")
        bottom.addWidget(self.preview_info, 1)

        self.download_btn = QPushButton("⤓ Download")
        self.download_btn.setObjectName("ctaButton")
        self.download_btn.setMinimumHeight(40)
        self.download_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.download_btn.setEnabled(False)
        bottom.addWidget(self.download_btn)

        layout.addLayout(bottom)
        return panel

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def _create_field_group(self, label: str, widget: QWidget) -> QWidget:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        lbl = QLabel(label)
        lbl.setObjectName("fieldLabel")
        layout.addWidget(lbl)
        layout.addWidget(widget)

        return container

    def _create_slider(self, label: str, min_val: int, max_val: int,
                       default: int, suffix: str) -> tuple:
        """Create a slider with spin box."""
        widget = QWidget()
        layout = QVBoxLayout(widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        lbl = QLabel(label)
        lbl.setObjectName("fieldLabel")
        layout.addWidget(lbl)

        row = QHBoxLayout()
        row.setSpacing(10)

        slider = NoWheelSlider(Qt.Orientation.Horizontal)
        slider.setRange(min_val, max_val)
        slider.setValue(default)
        row.addWidget(slider, 1)

        spin = QSpinBox()
        spin.setRange(min_val, max_val)
        spin.setValue(default)
        spin.setSuffix(suffix)
        spin.setFixedWidth(80)
        row.addWidget(spin)

        layout.addLayout(row)

        slider.valueChanged.connect(spin.setValue)
        spin.valueChanged.connect(slider.setValue)

        return widget, slider, spin

    # ========================================================================
    # SIGNAL CONNECTIONS
    # ========================================================================

    def _connect_signals(self):
        """
        Every control funnels into _request_render.

        Spin boxes (not sliders) are connected, since slider and spin are
        already cross-connected and would otherwise fire twice.
        """
        self.base_drop.file_selected.connect(self._on_base_selected)
        self.watermark_drop.file_selected.connect(self._on_watermark_selected)
        self.watermark_clear_btn.clicked.connect(self._on_watermark_cleared)

        self.base_opacity_spin.valueChanged.connect(self._request_render)
        self.shade_color_button.color_changed.connect(self._request_render)
        self.shade_opacity_spin.valueChanged.connect(self._request_render)
        self.text_edit.textChanged.connect(self._request_render)
        self.font_combo.currentTextChanged.connect(self._request_render)
        self.font_size_spin.valueChanged.connect(self._request_render)
        self.shadow_check.toggled.connect(self._request_render)
        self.watermark_opacity_spin.valueChanged.connect(self._request_render)
        self.watermark_scale_spin.valueChanged.connect(self._request_render)

        self._render_manager.render_started.connect(self._on_render_started)
        self._render_manager.composite_ready.connect(self._on_composite_ready)
        self._render_manager.render_failed.connect(self._on_render_failed)

        self.download_btn.clicked.connect(lambda: self.download_requested.emit())

    def _on_base_selected(self, path: Path):
        self._base_path = path
        self._render_manager.clear_cache()
        self._request_render()

    def _on_watermark_selected(self, path: Path):
        self._watermark_path = path
        self.watermark_clear_btn.setEnabled(True)
        self._render_manager.clear_cache()
        self._request_render()

    def _on_watermark_cleared(self):
        self._watermark_path = None
        self.watermark_drop.set_selected_path(None)
        self.watermark_clear_btn.setEnabled(False)
        self._request_render()

    def _request_render(self, *args):
        self._render_manager.request_render(self.get_parameters())

    def _on_render_started(self):
        self.preview_canvas.set_loading(True)
        self.preview_info.setText("⟳ Rendering...")

    def _on_composite_ready(self, composite: RenderedComposite):
        if not self.preview_canvas.set_preview_data(composite.data):
            self._on_render_failed("Preview could not be displayed")
            return
        width, height = composite.size
        self.preview_info.setText(f"◆ {width} × {height} px")
        self.download_btn.setEnabled(True)

    def _on_render_failed(self, message: str):
        self.preview_canvas.set_error(message)
        self.preview_info.setText(f"✕ {message}")

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def get_parameters(self) -> CompositionParameters:
        """Snapshot every control into a CompositionParameters value."""
        return CompositionParameters(
            base_image=self._base_path,
            watermark_image=self._watermark_path,
            base_opacity=self.base_opacity_spin.value() / 100,
            shade_color=self.shade_color_button.get_color(),
            shade_opacity=self.shade_opacity_spin.value() / 100,
            watermark_opacity=self.watermark_opacity_spin.value() / 100,
            watermark_scale=self.watermark_scale_spin.value() / 100,
            text=self.text_edit.toPlainText(),
            font_family=self.font_combo.currentText(),
            font_size=self.font_size_spin.value(),
            shadow_enabled=self.shadow_check.isChecked(),
        )

    def latest_composite(self) -> Optional[RenderedComposite]:
        return self._render_manager.latest

    def set_image_directory(self, directory: str):
        self.base_drop.set_start_directory(directory)
        self.watermark_drop.set_start_directory(directory)

    def get_image_directory(self) -> str:
        path = self._base_path or self._watermark_path
        return str(path.parent) if path else ""
