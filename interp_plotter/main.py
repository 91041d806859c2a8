"""
Newton & Lagrange interpolation plotter.

Left click adds a point, or grabs a nearby one for dragging; right click
removes the point under the cursor.  "Create Line" fits the interpolating
polynomial through the unique-x points and keeps refitting it while points
move or the method changes.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import pyqtgraph as pg
from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QMouseEvent, QPainter, QPaintEvent, QPolygonF, QResizeEvent
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QDialog,
    QDoubleSpinBox,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from .interpolation import FloatArray, InterpolationMethod
from .points import PointStore, format_point
from .rendering import NOT_ENOUGH_POINTS_TEXT, Color, CurveState, Surface, render_scene
from .settings import DedupPolicy, PlotSettings
from .viewport import ViewportTracker

logger = logging.getLogger(__name__)


# ===========================================================================
# QPainter surface
# ===========================================================================

class QtPainterSurface(Surface):

    def __init__(self, painter: QPainter) -> None:
        self._painter = painter

    def clear(self, width: float, height: float) -> None:
        self._painter.fillRect(0, 0, int(width), int(height), pg.mkColor("w"))

    def draw_line(self, x0: float, y0: float, x1: float, y1: float,
                  color: Color, width: float) -> None:
        self._painter.setPen(pg.mkPen(color, width=width))
        self._painter.drawLine(QPointF(x0, y0), QPointF(x1, y1))

    def draw_polyline(self, pts: FloatArray, color: Color, width: float) -> None:
        self._painter.setPen(pg.mkPen(color, width=width))
        self._painter.drawPolyline(QPolygonF([QPointF(float(x), float(y)) for x, y in pts]))

    def fill_circle(self, cx: float, cy: float, radius: float, color: Color) -> None:
        self._painter.setPen(Qt.PenStyle.NoPen)
        self._painter.setBrush(pg.mkBrush(color))
        self._painter.drawEllipse(QPointF(cx, cy), radius, radius)


# ===========================================================================
# Plot canvas
# ===========================================================================

class PlotCanvas(QWidget):
    formulaChanged: Signal = Signal(str)
    pointsChanged: Signal = Signal()

    def __init__(self, settings: PlotSettings, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self._store = PointStore(settings.drag_threshold_px)
        self._tracker = ViewportTracker(settings, self.width(), self.height())
        self._state = CurveState()
        self._formula = NOT_ENOUGH_POINTS_TEXT
        self.setMinimumSize(200, 150)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

    @property
    def store(self) -> PointStore:
        return self._store

    @property
    def state(self) -> CurveState:
        return self._state

    @property
    def formula(self) -> str:
        return self._formula

    # ------------------------------------------------------------------
    # Commands from the window
    # ------------------------------------------------------------------

    def commit(self) -> None:
        self._state.commit()
        self.update()

    def set_method(self, method: InterpolationMethod) -> None:
        self._state.set_method(method)
        self.update()

    def remove_point(self, index: int) -> None:
        self._store.remove_at(index)
        self._points_changed()

    def clear_points(self) -> None:
        self._store.clear()
        self._state.hide()
        self._points_changed()

    def reconfigure(self, settings: PlotSettings) -> None:
        self._settings = settings
        self._store.drag_threshold_px = settings.drag_threshold_px
        self._tracker.reconfigure(settings)
        self._state.recompute()
        self.update()

    def _points_changed(self) -> None:
        if self._state.visible:
            self._state.recompute()
        self.pointsChanged.emit()
        self.update()

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------

    def resizeEvent(self, event: QResizeEvent) -> None:  # noqa: N802
        size = event.size()
        if self._tracker.observe(size.width(), size.height()):
            self.update()
        super().resizeEvent(event)

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            result = render_scene(QtPainterSurface(painter), self._store,
                                  self._tracker.transform, self._state, self._settings)
        finally:
            painter.end()
        if result.formula is not None and result.formula != self._formula:
            self._formula = result.formula
            self.formulaChanged.emit(result.formula)

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        viewport = self._tracker.transform
        if event.button() == Qt.MouseButton.LeftButton:
            before = self._store.revision
            self._store.add_or_select(pos.x(), pos.y(), viewport)
            if self._store.revision != before:
                self._points_changed()
            return
        if event.button() == Qt.MouseButton.RightButton:
            if self._store.remove_near(pos.x(), pos.y(), viewport) is not None:
                self._points_changed()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.buttons() & Qt.MouseButton.LeftButton:
            pos = event.position()
            if self._store.drag_update(pos.x(), pos.y(), self._tracker.transform):
                self._points_changed()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            self._store.drag_end()
            return
        super().mouseReleaseEvent(event)


# ===========================================================================
# Settings dialog
# ===========================================================================

class SettingsDialog(QDialog):

    def __init__(self, settings: PlotSettings, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Plot Settings")
        self._settings = settings
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QGridLayout(self)

        self._x_min_edit = QLineEdit(str(self._settings.x_min))
        self._x_max_edit = QLineEdit(str(self._settings.x_max))
        self._y_min_edit = QLineEdit(str(self._settings.y_min))
        self._y_max_edit = QLineEdit(str(self._settings.y_max))
        self._grid_edit = QLineEdit(str(self._settings.grid_spacing))

        self._threshold_sb = QDoubleSpinBox()
        self._threshold_sb.setRange(1.0, 50.0)
        self._threshold_sb.setDecimals(1)
        self._threshold_sb.setValue(self._settings.drag_threshold_px)
        self._threshold_sb.setToolTip("Pixels; a point is grabbed within twice this distance")

        self._coef_sb = QSpinBox()
        self._coef_sb.setRange(0, 10)
        self._coef_sb.setValue(self._settings.coef_decimals)
        self._node_sb = QSpinBox()
        self._node_sb.setRange(0, 10)
        self._node_sb.setValue(self._settings.node_decimals)

        self._dedup_cb = QComboBox()
        for policy in DedupPolicy:
            self._dedup_cb.addItem(f"Keep {policy.value} point per x", policy)
        self._dedup_cb.setCurrentIndex(list(DedupPolicy).index(self._settings.dedup_policy))

        fields: list[tuple[str, QWidget]] = [
            ("X Min:", self._x_min_edit),
            ("X Max:", self._x_max_edit),
            ("Y Min:", self._y_min_edit),
            ("Y Max:", self._y_max_edit),
            ("Grid Spacing:", self._grid_edit),
            ("Drag Threshold (px):", self._threshold_sb),
            ("Coefficient Decimals:", self._coef_sb),
            ("Node Decimals:", self._node_sb),
            ("Duplicate x:", self._dedup_cb),
        ]
        for row, (label, widget) in enumerate(fields):
            layout.addWidget(QLabel(label), row, 0)
            layout.addWidget(widget, row, 1)

        btn_row = QHBoxLayout()
        ok_btn = QPushButton("OK")
        cancel_btn = QPushButton("Cancel")
        ok_btn.clicked.connect(self.accept)
        cancel_btn.clicked.connect(self.reject)
        btn_row.addWidget(ok_btn)
        btn_row.addWidget(cancel_btn)
        layout.addLayout(btn_row, len(fields), 0, 1, 2)

    def get_settings(self) -> PlotSettings:
        """Raises ValueError when a field does not parse or fails validation."""
        return PlotSettings(
            x_min=float(self._x_min_edit.text()),
            x_max=float(self._x_max_edit.text()),
            y_min=float(self._y_min_edit.text()),
            y_max=float(self._y_max_edit.text()),
            grid_spacing=float(self._grid_edit.text()),
            drag_threshold_px=float(self._threshold_sb.value()),
            coef_decimals=int(self._coef_sb.value()),
            node_decimals=int(self._node_sb.value()),
            dedup_policy=self._dedup_cb.currentData(),
        )


# ===========================================================================
# Main window
# ===========================================================================

class InterpolationApp(QMainWindow):

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Newton & Lagrange Interpolation")
        self.setGeometry(100, 100, 1100, 720)

        self._settings = PlotSettings()
        self._point_rows: list[QWidget] = []

        self._build_ui()
        self._refresh_points()

    def _build_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        root = QHBoxLayout(central)

        left = QVBoxLayout()
        self._canvas = PlotCanvas(self._settings)
        self._canvas.formulaChanged.connect(self._on_formula_changed)
        self._canvas.pointsChanged.connect(self._refresh_points)
        left.addWidget(self._canvas)

        btn_row = QHBoxLayout()
        self._clear_btn = QPushButton("Clear Points")
        self._line_btn = QPushButton("Create Line")
        self._settings_btn = QPushButton("Settings")
        self._status_lbl = QLabel("Ready")
        self._status_lbl.setStyleSheet("color: gray; font-style: italic;")

        self._clear_btn.clicked.connect(self.clear_points)
        self._line_btn.clicked.connect(self._canvas.commit)
        self._settings_btn.clicked.connect(self.show_settings)

        for widget in (self._clear_btn, self._line_btn, self._settings_btn, self._status_lbl):
            btn_row.addWidget(widget)
        left.addLayout(btn_row)
        root.addLayout(left, 3)

        right = QVBoxLayout()

        method_row = QHBoxLayout()
        method_row.addWidget(QLabel("Method:"))
        self._method_cb = QComboBox()
        for method in InterpolationMethod:
            self._method_cb.addItem(method.value, method)
        self._method_cb.currentIndexChanged.connect(self._on_method_changed)
        method_row.addWidget(self._method_cb, 1)
        right.addLayout(method_row)

        right.addWidget(QLabel("Interpolation formula P(x):"))
        self._formula_edit = QLineEdit(self._canvas.formula)
        self._formula_edit.setReadOnly(True)
        self._formula_edit.setStyleSheet("font-family: 'Courier New';")
        right.addWidget(self._formula_edit)

        # ── points list ────────────────────────────────────────────────
        pts_group = QGroupBox("Points")
        group_layout = QVBoxLayout(pts_group)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        holder = QWidget()
        self._points_layout = QVBoxLayout(holder)
        self._points_layout.setSpacing(2)
        self._points_layout.addStretch(1)
        scroll.setWidget(holder)
        group_layout.addWidget(scroll)
        self._empty_lbl = QLabel("No points yet.")
        self._empty_lbl.setStyleSheet("color: gray;")
        group_layout.addWidget(self._empty_lbl)
        right.addWidget(pts_group, 1)

        root.addLayout(right, 1)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def _on_formula_changed(self, text: str) -> None:
        self._formula_edit.setText(text)
        self._formula_edit.setCursorPosition(0)

    def _on_method_changed(self, index: int) -> None:
        method: InterpolationMethod = self._method_cb.itemData(index)
        self._canvas.set_method(method)
        self._status_lbl.setText(f"Method: {method.value}")

    def _refresh_points(self) -> None:
        """Rebuild one row per stored point, each with its own Remove button."""
        for row in self._point_rows:
            self._points_layout.removeWidget(row)
            row.deleteLater()
        self._point_rows = []

        for idx, point in enumerate(self._canvas.store):
            row = self._create_point_row(idx, format_point(point))
            self._points_layout.insertWidget(idx, row)
            self._point_rows.append(row)

        n = len(self._canvas.store)
        self._empty_lbl.setVisible(n == 0)
        self._line_btn.setEnabled(n >= 2)

    def _create_point_row(self, idx: int, label: str) -> QWidget:
        row = QWidget()
        hl = QHBoxLayout(row)
        hl.setContentsMargins(2, 1, 2, 1)
        hl.setSpacing(6)

        lbl = QLabel(label)
        lbl.setStyleSheet("color: rgb(30,64,175); font-weight: bold;")
        btn = QPushButton("Remove")
        btn.setStyleSheet("color: rgb(239,68,68);")
        btn.clicked.connect(lambda _checked=False, i=idx: self._canvas.remove_point(i))

        hl.addWidget(lbl)
        hl.addStretch(1)
        hl.addWidget(btn)
        return row

    def clear_points(self) -> None:
        self._canvas.clear_points()
        self._status_lbl.setText("Ready")

    def show_settings(self) -> None:
        dlg = SettingsDialog(self._settings, self)
        if not dlg.exec():
            return
        try:
            new_s = dlg.get_settings()
        except (ValueError, TypeError) as exc:
            QMessageBox.critical(self, "Invalid Settings", str(exc))
            return
        self._settings = new_s
        self._canvas.reconfigure(new_s)
        logger.info("Settings updated: %s", new_s)


# ===========================================================================
# Entry point
# ===========================================================================

def main() -> None:
    logging.basicConfig(
        level=os.environ.get("INTERP_PLOTTER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(sys.argv)
    window = InterpolationApp()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
