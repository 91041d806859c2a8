from __future__ import annotations


class InterpolationError(Exception):
    """Base class for everything the interpolation core can raise."""


class DuplicateXError(InterpolationError):

    def __init__(self, x: float) -> None:
        super().__init__(f"duplicate x-coordinate {x!r}: divided difference denominator is zero")
        self.x = x


class InsufficientPointsError(InterpolationError):

    def __init__(self, unique_count: int, required: int = 2) -> None:
        super().__init__(f"need at least {required} unique x-values, got {unique_count}")
        self.unique_count = unique_count
        self.required = required


class InvalidViewportError(InterpolationError):

    def __init__(self, width: float, height: float) -> None:
        super().__init__(f"surface {width}x{height} px leaves no positive plot area")
        self.width = width
        self.height = height
