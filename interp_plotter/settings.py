from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DedupPolicy(Enum):
    """Which point survives when several stored points share an x-value."""

    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True, slots=True)
class PlotSettings:
    x_min: float = -10.0
    x_max: float = 10.0
    y_min: float = -10.0
    y_max: float = 10.0
    grid_spacing: float = 1.0
    drag_threshold_px: float = 5.0   # doubled when hit-testing
    padding_min_px: float = 10.0
    padding_max_px: float = 50.0
    padding_ratio: float = 0.05
    samples_min: int = 100
    samples_max: int = 300
    coef_decimals: int = 2           # Newton formula coefficients
    node_decimals: int = 1           # Newton formula (x - x_k) nodes
    dedup_policy: DedupPolicy = DedupPolicy.FIRST

    def __post_init__(self) -> None:
        if self.x_min >= self.x_max:
            raise ValueError(f"x_min ({self.x_min}) must be < x_max ({self.x_max})")
        if self.y_min >= self.y_max:
            raise ValueError(f"y_min ({self.y_min}) must be < y_max ({self.y_max})")
        if self.grid_spacing <= 0:
            raise ValueError(f"grid_spacing must be positive, got {self.grid_spacing}")
        if self.drag_threshold_px <= 0:
            raise ValueError(f"drag_threshold_px must be positive, got {self.drag_threshold_px}")
        if not (0 < self.padding_min_px <= self.padding_max_px):
            raise ValueError(
                f"padding bounds must satisfy 0 < min <= max, "
                f"got [{self.padding_min_px}, {self.padding_max_px}]"
            )
        if not (0.0 < self.padding_ratio < 0.5):
            raise ValueError(f"padding_ratio must be in (0, 0.5), got {self.padding_ratio}")
        if not (1 <= self.samples_min <= self.samples_max):
            raise ValueError(
                f"sample bounds must satisfy 1 <= min <= max, "
                f"got [{self.samples_min}, {self.samples_max}]"
            )
        for name in ("coef_decimals", "node_decimals"):
            value = getattr(self, name)
            if not (0 <= value <= 10):
                raise ValueError(f"{name} must be in [0, 10], got {value}")

    @property
    def domain_width(self) -> float:
        return self.x_max - self.x_min

    @property
    def domain_height(self) -> float:
        return self.y_max - self.y_min

    @property
    def x_mid(self) -> float:
        return 0.5 * (self.x_min + self.x_max)

    @property
    def y_mid(self) -> float:
        return 0.5 * (self.y_min + self.y_max)
