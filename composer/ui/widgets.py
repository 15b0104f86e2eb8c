"""
Reusable UI Widgets
===================
Custom widgets used by the compose tab.

Key Components:
- ImageDropZone: Drag-and-drop / click-to-browse zone for one image
- ColorButton: Swatch button with a color picker
- NoWheelSlider: Slider that ignores the mouse wheel unless focused
- PreviewCanvas: Composite preview over a transparency grid
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal, QRectF
from PyQt6.QtGui import (
    QDragEnterEvent, QDropEvent, QPixmap, QColor, QPainter,
    QPainterPath, QBrush, QPen, QFont, QLinearGradient, QWheelEvent
)
from PyQt6.QtWidgets import (
    QLabel, QWidget, QPushButton, QSlider, QFileDialog, QSizePolicy,
    QColorDialog
)


class ImageDropZone(QLabel):
    """
    A drop zone that accepts a single image file.

    Click to open a file dialog, or drag an image onto it.

    Signals:
        file_selected(Path): Emitted when an image file is chosen.
    """

    file_selected = pyqtSignal(object)  # Path

    SUPPORTED_FORMATS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tiff"}

    ACCENT_COLOR = "#7AA2F7"
    BORDER_COLOR = "#4B5563"
    TEXT_COLOR = "#B0B8C4"

    def __init__(self, hint_text: str = "Drop an image here", parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._hint_text = hint_text
        self._selected: Optional[Path] = None
        self._start_dir = ""
        self._is_dragging = False

        self.setAcceptDrops(True)
        self.setMinimumSize(200, 72)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.setObjectName("imageDropZone")
        self.setCursor(Qt.CursorShape.PointingHandCursor)

    @classmethod
    def is_supported(cls, path: Path) -> bool:
        return path.suffix.lower() in cls.SUPPORTED_FORMATS

    def selected_path(self) -> Optional[Path]:
        return self._selected

    def set_selected_path(self, path: Optional[Path]):
        """Show `path` as the current file without emitting a signal."""
        self._selected = path
        self.update()

    def set_start_directory(self, directory: str):
        self._start_dir = directory

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        rect = QRectF(self.rect()).adjusted(2, 2, -2, -2)

        path = QPainterPath()
        path.addRoundedRect(rect, 8, 8)
        gradient = QLinearGradient(0, 0, 0, rect.height())
        if self._is_dragging:
            gradient.setColorAt(0, QColor("#1E3A4A"))
            gradient.setColorAt(1, QColor("#152535"))
        else:
            gradient.setColorAt(0, QColor("#2A2D35"))
            gradient.setColorAt(1, QColor("#252830"))
        painter.fillPath(path, QBrush(gradient))

        pen = QPen(QColor(self.ACCENT_COLOR if self._is_dragging else self.BORDER_COLOR))
        pen.setStyle(Qt.PenStyle.DashLine)
        pen.setWidth(2)
        painter.setPen(pen)
        painter.drawRoundedRect(rect.adjusted(1, 1, -1, -1), 7, 7)

        font = QFont()
        font.setPointSize(10)
        painter.setFont(font)
        if self._is_dragging:
            painter.setPen(QColor(self.ACCENT_COLOR))
            text = "Release to load the image"
        elif self._selected is not None:
            painter.setPen(QColor("#C0CAF5"))
            text = f"▣ {self._selected.name}"
        else:
            painter.setPen(QColor(self.TEXT_COLOR))
            text = self._hint_text
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)

        painter.end()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._open_file_dialog()
        super().mousePressEvent(event)

    def _open_file_dialog(self):
        formats = " ".join(f"*{fmt}" for fmt in sorted(self.SUPPORTED_FORMATS))
        file_name, _ = QFileDialog.getOpenFileName(
            self,
            "Select image",
            self._start_dir,
            f"Images ({formats});;All files (*.*)"
        )
        if file_name:
            self._select(Path(file_name))

    def _select(self, path: Path):
        self._selected = path
        self.update()
        self.file_selected.emit(path)

    def _first_supported(self, event) -> Optional[Path]:
        for url in event.mimeData().urls():
            if url.isLocalFile():
                path = Path(url.toLocalFile())
                if self.is_supported(path):
                    return path
        return None

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls() and self._first_supported(event) is not None:
            event.acceptProposedAction()
            self._is_dragging = True
            self.update()
            return
        event.ignore()

    def dragLeaveEvent(self, event):
        self._is_dragging = False
        self.update()
        super().dragLeaveEvent(event)

    def dropEvent(self, event: QDropEvent):
        self._is_dragging = False
        path = self._first_supported(event)
        if path is not None:
            self._select(path)
            event.acceptProposedAction()
        self.update()


class ColorButton(QPushButton):
    """
    Shade color swatch labelled with its hex value. Click to pick a new color.

    Signals:
        color_changed(tuple): Emitted after the user picks a color (r, g, b).
            Not emitted by set_color().
    """

    color_changed = pyqtSignal(tuple)

    def __init__(
            self,
            initial_color: tuple = (0, 0, 0),
            parent: Optional[QWidget] = None
    ):
        super().__init__(parent)

        self._color = tuple(initial_color)
        self.setFixedHeight(36)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setToolTip("Shade color")
        self.clicked.connect(self._pick_color)
        self._refresh()

    def hex_name(self) -> str:
        return "#{:02X}{:02X}{:02X}".format(*self._color)

    def _refresh(self):
        r, g, b = self._color
        is_light = (0.299 * r + 0.587 * g + 0.114 * b) > 140
        label_color = "#1A1B26" if is_light else "#E5E7EB"

        self.setText(self.hex_name())
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self.hex_name()};
                color: {label_color};
                border: 1px solid #4B5563;
                border-radius: 8px;
                font-size: 9px;
            }}
            QPushButton:hover {{
                border: 2px solid #7AA2F7;
            }}
        """)

    def _pick_color(self):
        picked = QColorDialog.getColor(QColor(*self._color), self, "Shade color")
        if not picked.isValid():
            return
        self.set_color((picked.red(), picked.green(), picked.blue()))
        self.color_changed.emit(self._color)

    def get_color(self) -> tuple:
        return self._color

    def set_color(self, color: tuple):
        self._color = tuple(int(c) for c in color[:3])
        self._refresh()


class NoWheelSlider(QSlider):
    """
    Parameter slider for the scrolling control panel.

    Wheel events scroll the panel instead of nudging the value, unless the
    slider has keyboard focus.
    """

    def __init__(self, orientation=Qt.Orientation.Horizontal, parent=None):
        super().__init__(orientation, parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setPageStep(10)

    def wheelEvent(self, event: QWheelEvent):
        if not self.hasFocus():
            event.ignore()
            return
        super().wheelEvent(event)


class PreviewCanvas(QWidget):
    """
    Preview widget with transparency grid background.

    States: placeholder, loading, error, preview. While loading, the
    previous preview stays visible under a small badge.
    """

    GRID_LIGHT = QColor("#222639")
    GRID_DARK = QColor("#1A1E2E")
    GRID_SIZE = 12

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._pixmap: Optional[QPixmap] = None
        self._is_loading = False
        self._error_message: Optional[str] = None

        self.setObjectName("previewCanvas")
        self.setMinimumSize(400, 400)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        # The preview is for looking only; saving goes through the download button
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.PreventContextMenu)

    def has_preview(self) -> bool:
        return self._pixmap is not None and not self._pixmap.isNull()

    def set_preview_data(self, data: bytes) -> bool:
        """Decode encoded image bytes and show them. Returns False if Qt cannot decode them."""
        pixmap = QPixmap()
        if not pixmap.loadFromData(data):
            return False
        self.set_preview(pixmap)
        return True

    def set_preview(self, pixmap: QPixmap):
        self._pixmap = pixmap
        self._is_loading = False
        self._error_message = None
        self.update()

    def set_loading(self, is_loading: bool = True):
        self._is_loading = is_loading
        self.update()

    def set_error(self, message: str):
        """Show an error; an existing preview is kept underneath."""
        self._error_message = message
        self._is_loading = False
        self.update()

    def clear(self):
        self._pixmap = None
        self._is_loading = False
        self._error_message = None
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        rect = self.rect()

        clip_path = QPainterPath()
        clip_path.addRoundedRect(QRectF(rect).adjusted(1, 1, -1, -1), 10, 10)
        painter.setClipPath(clip_path)

        for y in range(0, rect.height(), self.GRID_SIZE):
            for x in range(0, rect.width(), self.GRID_SIZE):
                is_light = ((x // self.GRID_SIZE) + (y // self.GRID_SIZE)) % 2 == 0
                painter.fillRect(x, y, self.GRID_SIZE, self.GRID_SIZE,
                                 self.GRID_LIGHT if is_light else self.GRID_DARK)

        painter.setClipping(False)

        pen = QPen(QColor("#3B4261"))
        pen.setWidth(1)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(QRectF(rect).adjusted(0.5, 0.5, -0.5, -0.5), 10, 10)

        if self.has_preview():
            self._draw_preview(painter, rect)
        elif not self._is_loading and not self._error_message:
            self._draw_placeholder(painter, rect)

        if self._is_loading:
            self._draw_badge(painter, rect, "⟳ Rendering...", QColor("#7AA2F7"))
        elif self._error_message:
            self._draw_badge(painter, rect, f"✕ {self._error_message}", QColor("#F7768E"))

        painter.end()

    def _draw_preview(self, painter: QPainter, rect):
        scaled = self._pixmap.scaled(
            rect.width() - 40,
            rect.height() - 40,
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation
        )

        x = (rect.width() - scaled.width()) / 2
        y = (rect.height() - scaled.height()) / 2

        painter.fillRect(QRectF(x + 4, y + 4, scaled.width(), scaled.height()), QColor(0, 0, 0, 60))
        painter.drawPixmap(int(x), int(y), scaled)

    def _draw_placeholder(self, painter: QPainter, rect):
        center_y = rect.height() // 2

        painter.setPen(QPen(QColor("#3B4261")))
        font = painter.font()
        font.setPointSize(48)
        painter.setFont(font)
        painter.drawText(QRectF(rect.x(), center_y - 40, rect.width(), 60),
                         Qt.AlignmentFlag.AlignCenter, "◇")

        font.setPointSize(13)
        painter.setFont(font)
        painter.setPen(QPen(QColor("#565F89")))
        painter.drawText(QRectF(rect.x(), center_y + 30, rect.width(), 30),
                         Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop,
                         "Choose a base image to start")

    def _draw_badge(self, painter: QPainter, rect, text: str, color: QColor):
        font = painter.font()
        font.setPointSize(11)
        painter.setFont(font)

        badge = QRectF(12, rect.height() - 44, rect.width() - 24, 32)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(26, 27, 38, 220))
        painter.drawRoundedRect(badge, 6, 6)

        painter.setPen(QPen(color))
        painter.drawText(badge, Qt.AlignmentFlag.AlignCenter, text)
