from .errors import DuplicateXError, InsufficientPointsError, InterpolationError, InvalidViewportError
from .interpolation import (
    CurveFit,
    FitInput,
    InterpolationMethod,
    divided_differences,
    evaluate_lagrange,
    evaluate_newton,
    fit_curve,
    format_newton_formula,
    prepare_fit_input,
)
from .points import Point, PointStore
from .rendering import CurveState, RecordingSurface, RenderResult, Surface, render_scene, sample_curve
from .settings import DedupPolicy, PlotSettings
from .viewport import ViewportTracker, ViewportTransform

__version__ = "0.1.0"
