from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import InvalidViewportError
from .interpolation import Scalar
from .settings import PlotSettings

logger = logging.getLogger(__name__)

# Padding never exceeds dimension / PADDING_DIVISOR, keeping the plot area positive.
PADDING_DIVISOR: float = 2.1


@dataclass(frozen=True, slots=True)
class ViewportTransform:
    """Maps the fixed logical window onto the current pixel rectangle.

    Pixel y grows downward and logical y grows upward, so the y maps flip sign.
    An invalid transform keeps identity maps; callers check ``is_valid`` before
    drawing or hit-testing with it.
    """

    width_px: float
    height_px: float
    padding_px: float
    origin_x: float
    origin_y: float
    scale_x: float
    scale_y: float
    x_mid: float = 0.0
    y_mid: float = 0.0
    is_valid: bool = True

    @classmethod
    def from_size(
        cls, width: float, height: float, settings: Optional[PlotSettings] = None
    ) -> ViewportTransform:
        s = settings or PlotSettings()
        if width <= 0 or height <= 0:
            return cls._invalid(width, height, 0.0, 0.0, 0.0)

        padding = min(width, height) * s.padding_ratio
        padding = max(s.padding_min_px, padding)
        padding = min(s.padding_max_px, padding)
        padding = min(padding, width / PADDING_DIVISOR, height / PADDING_DIVISOR)

        plot_w = width - 2 * padding
        plot_h = height - 2 * padding
        if plot_w <= 0 or plot_h <= 0:
            return cls._invalid(width, height, padding, width / 2, height / 2)

        return cls(
            width_px=width,
            height_px=height,
            padding_px=padding,
            origin_x=padding + plot_w / 2,
            origin_y=padding + plot_h / 2,
            scale_x=plot_w / s.domain_width,
            scale_y=plot_h / s.domain_height,
            x_mid=s.x_mid,
            y_mid=s.y_mid,
        )

    @classmethod
    def _invalid(
        cls, width: float, height: float, padding: float, origin_x: float, origin_y: float
    ) -> ViewportTransform:
        return cls(
            width_px=width,
            height_px=height,
            padding_px=padding,
            origin_x=origin_x,
            origin_y=origin_y,
            scale_x=1.0,
            scale_y=1.0,
            is_valid=False,
        )

    def require_valid(self) -> None:
        if not self.is_valid:
            raise InvalidViewportError(self.width_px, self.height_px)

    # ------------------------------------------------------------------
    # Forward maps (logical -> pixel)
    # ------------------------------------------------------------------

    def to_canvas_x(self, x: Scalar) -> Scalar:
        if not self.is_valid:
            return x
        return self.origin_x + (x - self.x_mid) * self.scale_x

    def to_canvas_y(self, y: Scalar) -> Scalar:
        if not self.is_valid:
            return y
        return self.origin_y - (y - self.y_mid) * self.scale_y

    # ------------------------------------------------------------------
    # Inverse maps (pixel -> logical)
    # ------------------------------------------------------------------

    def to_data_x(self, cx: Scalar) -> Scalar:
        if not self.is_valid:
            return cx
        return (cx - self.origin_x) / self.scale_x + self.x_mid

    def to_data_y(self, cy: Scalar) -> Scalar:
        if not self.is_valid:
            return cy
        return (self.origin_y - cy) / self.scale_y + self.y_mid

    def visible_x_range(self) -> tuple[float, float]:
        """Logical x at the left and right surface edges (padding included)."""
        return float(self.to_data_x(0.0)), float(self.to_data_x(self.width_px))

    def distance_px(self, x: float, y: float, px: float, py: float) -> float:
        """Pixel distance between logical point (x, y) and pixel (px, py)."""
        return float(np.hypot(self.to_canvas_x(x) - px, self.to_canvas_y(y) - py))


class ViewportTracker:
    """Holds the current transform and rebuilds it only on a real size change."""

    def __init__(self, settings: Optional[PlotSettings] = None,
                 width: int = 800, height: int = 600) -> None:
        self._settings = settings or PlotSettings()
        self._size = (int(round(width)), int(round(height)))
        self._transform = ViewportTransform.from_size(*self._size, self._settings)

    @property
    def transform(self) -> ViewportTransform:
        return self._transform

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def observe(self, width: float, height: float) -> bool:
        """Record a size observation; return True when the transform was rebuilt."""
        size = (max(0, int(round(width))), max(0, int(round(height))))
        if size == self._size:
            return False
        self._size = size
        self._transform = ViewportTransform.from_size(*size, self._settings)
        logger.debug("Viewport resized to %dx%d (valid=%s)", size[0], size[1],
                     self._transform.is_valid)
        return True

    def reconfigure(self, settings: PlotSettings) -> None:
        """Swap settings and rebuild the transform for the current size."""
        self._settings = settings
        self._transform = ViewportTransform.from_size(*self._size, settings)
