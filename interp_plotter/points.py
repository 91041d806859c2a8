from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .interpolation import FitInput, prepare_fit_input
from .settings import DedupPolicy
from .viewport import ViewportTransform

logger = logging.getLogger(__name__)

# Logical coordinates are stored rounded to this many decimals.
COORD_DECIMALS: int = 2


@dataclass(slots=True)
class Point:
    x: float
    y: float


def format_point(point: Point) -> str:
    return f"({point.x:.2f}, {point.y:.2f})"


class PointStore:
    """Ordered, index-addressed points plus the index being dragged, if any.

    Hit-testing happens in pixel space: a stored point is hit when its forward
    transform lies strictly closer than ``2 * drag_threshold_px`` to the pointer.
    """

    def __init__(self, drag_threshold_px: float = 5.0) -> None:
        self.drag_threshold_px = drag_threshold_px
        self.drag_index: Optional[int] = None
        self._points: list[Point] = []
        self._revision = 0

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def __getitem__(self, index: int) -> Point:
        return self._points[index]

    @property
    def points(self) -> list[Point]:
        return list(self._points)

    @property
    def revision(self) -> int:
        """Bumped on every mutation of the stored points."""
        return self._revision

    @property
    def hit_radius_px(self) -> float:
        return 2.0 * self.drag_threshold_px

    # ------------------------------------------------------------------
    # Pointer-driven operations
    # ------------------------------------------------------------------

    def find_near(self, px: float, py: float, viewport: ViewportTransform) -> Optional[int]:
        """Index of the first point (in index order) within the hit radius."""
        if not viewport.is_valid:
            return None
        radius = self.hit_radius_px
        for i, p in enumerate(self._points):
            if viewport.distance_px(p.x, p.y, px, py) < radius:
                return i
        return None

    def add_or_select(self, px: float, py: float, viewport: ViewportTransform) -> Optional[int]:
        """Select a nearby point for dragging, or append a new one.

        Returns the selected or appended index, or None when the viewport is
        invalid.
        """
        if not viewport.is_valid:
            return None
        hit = self.find_near(px, py, viewport)
        if hit is not None:
            self.drag_index = hit
            logger.debug("Selected point %d for dragging", hit)
            return hit
        x, y = self._to_logical(px, py, viewport)
        self._points.append(Point(x, y))
        self._touch()
        logger.debug("Added point (%.2f, %.2f) at index %d", x, y, len(self._points) - 1)
        return len(self._points) - 1

    def remove_near(self, px: float, py: float, viewport: ViewportTransform) -> Optional[Point]:
        hit = self.find_near(px, py, viewport)
        if hit is None:
            return None
        return self.remove_at(hit)

    def drag_update(self, px: float, py: float, viewport: ViewportTransform) -> bool:
        """Move the dragged point to the pointer; False when nothing moved."""
        if self.drag_index is None or not viewport.is_valid:
            return False
        if not (0 <= self.drag_index < len(self._points)):
            self.drag_index = None
            return False
        x, y = self._to_logical(px, py, viewport)
        point = self._points[self.drag_index]
        point.x, point.y = x, y
        self._touch()
        return True

    def drag_end(self) -> None:
        self.drag_index = None

    # ------------------------------------------------------------------
    # List-driven operations
    # ------------------------------------------------------------------

    def remove_at(self, index: int) -> Point:
        """Delete by index regardless of proximity; clears any drag selection."""
        if not (0 <= index < len(self._points)):
            raise IndexError(f"point index {index} out of range for {len(self._points)} points")
        point = self._points.pop(index)
        self.drag_index = None
        self._touch()
        logger.debug("Removed point %d %s", index, format_point(point))
        return point

    def clear(self) -> None:
        self._points.clear()
        self.drag_index = None
        self._touch()

    def fit_input(self, policy: DedupPolicy = DedupPolicy.FIRST) -> FitInput:
        xs = np.fromiter((p.x for p in self._points), dtype=np.float64, count=len(self._points))
        ys = np.fromiter((p.y for p in self._points), dtype=np.float64, count=len(self._points))
        return prepare_fit_input(xs, ys, policy)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_logical(px: float, py: float, viewport: ViewportTransform) -> tuple[float, float]:
        return (round(float(viewport.to_data_x(px)), COORD_DECIMALS),
                round(float(viewport.to_data_y(py)), COORD_DECIMALS))

    def _touch(self) -> None:
        self._revision += 1
