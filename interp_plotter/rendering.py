"""
Render pipeline: grid, axes, point markers and the interpolated curve.

``render_scene`` is a pure function of its arguments.  It draws through a
``Surface`` handle and returns the formula text for the sink instead of
holding on to any drawing state between calls, so it can be exercised against
a ``RecordingSurface`` in tests and against a QPainter in the application.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional, Sequence

import numpy as np

from .errors import DuplicateXError, InsufficientPointsError, InvalidViewportError
from .interpolation import (
    NEWTON_ERROR_TEXT,
    CurveFit,
    EvaluationFunction,
    FloatArray,
    InterpolationMethod,
    fit_curve,
    prepare_fit_input,
)
from .points import Point
from .settings import PlotSettings
from .viewport import ViewportTransform

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

HIDDEN_TEXT: str = "P(x) = (curve hidden)"
NOT_ENOUGH_POINTS_TEXT: str = "P(x) = (not enough points)"
NEED_UNIQUE_TEXT: str = "P(x) = (need at least 2 unique points)"

GRID_COLOR: Color = (238, 238, 238)
AXIS_COLOR: Color = (170, 170, 170)
POINT_COLOR: Color = (96, 165, 250)
CURVE_COLOR: Color = (139, 92, 246)

MARKER_RADIUS_MIN: float = 3.0
MARKER_RADIUS_MAX: float = 5.0

# Samples whose pixel y leaves [-ABOVE*H, BELOW*H] break the curve path.
OUT_OF_BOUNDS_ABOVE: float = 2.0
OUT_OF_BOUNDS_BELOW: float = 3.0


# ===========================================================================
# Drawing surfaces
# ===========================================================================

class Surface(ABC):

    @abstractmethod
    def clear(self, width: float, height: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def draw_line(self, x0: float, y0: float, x1: float, y1: float,
                  color: Color, width: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def draw_polyline(self, pts: FloatArray, color: Color, width: float) -> None:
        """Stroke one connected path through the rows of an (m, 2) pixel array."""
        raise NotImplementedError

    @abstractmethod
    def fill_circle(self, cx: float, cy: float, radius: float, color: Color) -> None:
        raise NotImplementedError


class DrawCommand(NamedTuple):
    op: str
    args: tuple[Any, ...]


class RecordingSurface(Surface):
    """Surface that only records what was asked of it."""

    def __init__(self) -> None:
        self.commands: list[DrawCommand] = []

    def clear(self, width: float, height: float) -> None:
        self.commands.append(DrawCommand("clear", (width, height)))

    def draw_line(self, x0: float, y0: float, x1: float, y1: float,
                  color: Color, width: float) -> None:
        self.commands.append(DrawCommand("line", (x0, y0, x1, y1, color, width)))

    def draw_polyline(self, pts: FloatArray, color: Color, width: float) -> None:
        self.commands.append(DrawCommand("polyline", (np.array(pts, copy=True), color, width)))

    def fill_circle(self, cx: float, cy: float, radius: float, color: Color) -> None:
        self.commands.append(DrawCommand("circle", (cx, cy, radius, color)))

    def ops(self, op: str) -> list[DrawCommand]:
        return [c for c in self.commands if c.op == op]


# ===========================================================================
# Curve state
# ===========================================================================

@dataclass(slots=True)
class CurveState:
    """Whether a fit is shown, with which method, and a recompute counter.

    ``generation`` changes whenever a fresh fit is requested; the shell
    repaints on every change instead of toggling visibility off and on.
    """

    visible: bool = False
    method: InterpolationMethod = InterpolationMethod.NEWTON
    generation: int = 0

    def commit(self) -> None:
        self.visible = True
        self.generation += 1

    def hide(self) -> None:
        self.visible = False

    def set_method(self, method: InterpolationMethod) -> None:
        if method is not self.method:
            self.method = method
            self.generation += 1

    def recompute(self) -> None:
        self.generation += 1


@dataclass(frozen=True, slots=True)
class RenderResult:
    formula: Optional[str]            # None: viewport invalid, sink left untouched
    fit: Optional[CurveFit] = None
    paths: list[FloatArray] = field(default_factory=list)
    generation: int = 0


# ===========================================================================
# Sampling
# ===========================================================================

def sample_segments(width_px: float, settings: Optional[PlotSettings] = None) -> int:
    """Curve segment count: clamp(width / 2, samples_min, samples_max)."""
    s = settings or PlotSettings()
    return int(max(s.samples_min, min(s.samples_max, width_px / 2)))


def marker_radius(width_px: float) -> float:
    return max(MARKER_RADIUS_MIN, min(MARKER_RADIUS_MAX, width_px / 100))


def sample_curve(
    evaluate: EvaluationFunction,
    viewport: ViewportTransform,
    settings: Optional[PlotSettings] = None,
) -> list[FloatArray]:
    """Sample *evaluate* across the visible x-range and split it into paths.

    A sample breaks the current path when its y is not finite or its pixel y
    lies far above or below the surface; the next in-bounds sample starts a
    new path.  Each returned path is an (m, 2) array of pixel coordinates.
    """
    segments = sample_segments(viewport.width_px, settings)
    x_lo, x_hi = viewport.visible_x_range()
    xs = np.linspace(x_lo, x_hi, segments + 1, dtype=np.float64)

    with np.errstate(all="ignore"):
        ys = np.asarray(evaluate(xs), dtype=np.float64)
        cx = np.asarray(viewport.to_canvas_x(xs), dtype=np.float64)
        cy = np.asarray(viewport.to_canvas_y(ys), dtype=np.float64)

    h = viewport.height_px
    in_bounds = (np.isfinite(cy)
                 & (cy >= -OUT_OF_BOUNDS_ABOVE * h)
                 & (cy <= OUT_OF_BOUNDS_BELOW * h))
    kept = np.flatnonzero(in_bounds)
    if kept.size == 0:
        return []
    runs = np.split(kept, np.flatnonzero(np.diff(kept) > 1) + 1)
    return [np.column_stack((cx[run], cy[run])) for run in runs]


# ===========================================================================
# Scene
# ===========================================================================

def _draw_grid(surface: Surface, viewport: ViewportTransform, s: PlotSettings) -> None:
    w, h = viewport.width_px, viewport.height_px
    step = s.grid_spacing

    for k in range(math.ceil(s.x_min / step), math.floor(s.x_max / step) + 1):
        cx = float(viewport.to_canvas_x(k * step))
        surface.draw_line(cx, 0.0, cx, h, GRID_COLOR, 1)
    for k in range(math.ceil(s.y_min / step), math.floor(s.y_max / step) + 1):
        cy = float(viewport.to_canvas_y(k * step))
        surface.draw_line(0.0, cy, w, cy, GRID_COLOR, 1)

    axis_x = float(viewport.to_canvas_x(0.0))
    axis_y = float(viewport.to_canvas_y(0.0))
    surface.draw_line(0.0, axis_y, w, axis_y, AXIS_COLOR, 2)
    surface.draw_line(axis_x, 0.0, axis_x, h, AXIS_COLOR, 2)


def _draw_points(surface: Surface, points: Sequence[Point], viewport: ViewportTransform) -> None:
    radius = marker_radius(viewport.width_px)
    for p in points:
        surface.fill_circle(float(viewport.to_canvas_x(p.x)), float(viewport.to_canvas_y(p.y)),
                            radius, POINT_COLOR)


def render_scene(
    surface: Surface,
    points: Sequence[Point],
    viewport: ViewportTransform,
    state: CurveState,
    settings: Optional[PlotSettings] = None,
) -> RenderResult:
    s = settings or PlotSettings()
    surface.clear(viewport.width_px, viewport.height_px)
    try:
        viewport.require_valid()
    except InvalidViewportError as exc:
        logger.debug("Skipping frame: %s", exc)
        return RenderResult(formula=None, generation=state.generation)

    _draw_grid(surface, viewport, s)
    _draw_points(surface, points, viewport)

    if not state.visible:
        return RenderResult(HIDDEN_TEXT, generation=state.generation)
    if len(points) < 2:
        return RenderResult(NOT_ENOUGH_POINTS_TEXT, generation=state.generation)

    nodes = prepare_fit_input([p.x for p in points], [p.y for p in points], s.dedup_policy)
    try:
        fit = fit_curve(nodes, state.method, s.coef_decimals, s.node_decimals)
    except InsufficientPointsError:
        return RenderResult(NEED_UNIQUE_TEXT, generation=state.generation)
    except DuplicateXError as exc:
        logger.warning("Newton fit failed: %s", exc)
        return RenderResult(NEWTON_ERROR_TEXT, generation=state.generation)

    paths = sample_curve(fit.evaluate, viewport, s)
    for path in paths:
        if len(path) >= 2:
            surface.draw_polyline(path, CURVE_COLOR, 2)
    return RenderResult(fit.formula, fit=fit, paths=paths, generation=state.generation)
