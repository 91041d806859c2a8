"""
Interpolation engine: Newton divided differences and Lagrange evaluation.

Every routine here is a free function over explicit arrays.  Evaluators
accept a scalar or an ndarray of sample positions and return the same shape,
so the render pipeline can sample a whole curve in one call.

Methods
-------
Newton      divided-difference coefficients, nested-product evaluation and a
            readable closed-form string  P(x) = c0 + c1(x - x0) + ...
Lagrange    point-wise basis-term evaluation only; its formula is a fixed label
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import DuplicateXError, InsufficientPointsError
from .settings import DedupPolicy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

FloatArray = NDArray[np.floating[Any]]
Scalar = Union[float, FloatArray]
EvaluationFunction = Callable[[Scalar], Scalar]

NO_COEFFICIENTS_TEXT: str = "P(x) = (no coefficients)"
LAGRANGE_FORMULA_TEXT: str = "P(x) = (Lagrange Polynomial)"
NEWTON_ERROR_TEXT: str = "Error: Calculation issue (Newton)."


class InterpolationMethod(Enum):
    NEWTON = "Newton"
    LAGRANGE = "Lagrange"


# ===========================================================================
# Data-classes
# ===========================================================================

@dataclass(frozen=True, slots=True)
class FitInput:
    """Sorted, x-unique nodes handed to the engine."""

    xs: FloatArray
    ys: FloatArray

    def __post_init__(self) -> None:
        if self.xs.shape != self.ys.shape:
            raise ValueError(f"xs and ys differ in shape: {self.xs.shape} vs {self.ys.shape}")

    def __len__(self) -> int:
        return int(self.xs.size)


@dataclass(frozen=True, slots=True)
class CurveFit:
    method: InterpolationMethod
    evaluate: EvaluationFunction
    formula: str
    nodes: FitInput
    coefficients: Optional[FloatArray] = None   # Newton only


# ===========================================================================
# Fit input
# ===========================================================================

def prepare_fit_input(
    xs: ArrayLike,
    ys: ArrayLike,
    policy: DedupPolicy = DedupPolicy.FIRST,
) -> FitInput:
    """Sort by x (stable) and keep one point per distinct x according to *policy*."""
    x = np.asarray(xs, dtype=np.float64).ravel()
    y = np.asarray(ys, dtype=np.float64).ravel()
    if x.shape != y.shape:
        raise ValueError(f"xs and ys differ in length: {x.size} vs {y.size}")
    if x.size == 0:
        return FitInput(x, y)

    order = np.argsort(x, kind="stable")
    x_sorted, y_sorted = x[order], y[order]

    if policy is DedupPolicy.FIRST:
        _, keep = np.unique(x_sorted, return_index=True)
    else:
        _, keep_rev = np.unique(x_sorted[::-1], return_index=True)
        keep = np.sort(x_sorted.size - 1 - keep_rev)

    if keep.size < x_sorted.size:
        logger.debug("Dropped %d duplicate-x point(s) before fitting", x_sorted.size - keep.size)
    return FitInput(x_sorted[keep], y_sorted[keep])


# ===========================================================================
# Newton
# ===========================================================================

def divided_differences(xs: ArrayLike, ys: ArrayLike) -> FloatArray:
    """Return the Newton coefficient vector (first row of the table).

    Column k of the table is rebuilt in place from column k-1:
    ``col_k[i] = (col_{k-1}[i+1] - col_{k-1}[i]) / (xs[i+k] - xs[i])``.
    Raises DuplicateXError as soon as any denominator is exactly zero, so no
    partially built vector ever reaches the caller.
    """
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    if x.ndim != 1 or x.shape != y.shape:
        raise ValueError(f"xs and ys must be 1-D of equal length, got {x.shape} and {y.shape}")
    n = x.size
    if n == 0:
        raise ValueError("divided differences need at least one point")

    coefficients = np.empty(n, dtype=np.float64)
    column = y.copy()
    coefficients[0] = column[0]
    for k in range(1, n):
        denom = x[k:] - x[: n - k]
        zero = np.flatnonzero(denom == 0.0)
        if zero.size:
            raise DuplicateXError(float(x[zero[0]]))
        column = (column[1:] - column[:-1]) / denom
        coefficients[k] = column[0]
    return coefficients


def evaluate_newton(x: Scalar, xs: ArrayLike, coefficients: ArrayLike) -> Scalar:
    """Evaluate the Newton form at *x*; NaN when *coefficients* is empty."""
    c = np.asarray(coefficients, dtype=np.float64)
    nodes = np.asarray(xs, dtype=np.float64)
    x_arr = np.asarray(x, dtype=np.float64)

    if c.size == 0:
        return _like_input(x, np.full_like(x_arr, np.nan))

    result = np.full_like(x_arr, c[0])
    product = np.ones_like(x_arr)
    for k in range(1, c.size):
        product = product * (x_arr - nodes[k - 1])
        result = result + c[k] * product
    return _like_input(x, result)


def format_newton_formula(
    xs: ArrayLike,
    coefficients: ArrayLike,
    coef_decimals: int = 2,
    node_decimals: int = 1,
) -> str:
    """Render ``P(x) = c0 ± |c1|(x - x0) ± |c2|(x - x0)(x - x1) ...``."""
    c = np.asarray(coefficients, dtype=np.float64)
    nodes = np.asarray(xs, dtype=np.float64)
    if c.size == 0:
        return NO_COEFFICIENTS_TEXT

    # signs follow the printed value, so -0.004 shows as 0.00
    c = np.round(c, coef_decimals) + 0.0
    parts = [f"P(x) = {float(c[0]):.{coef_decimals}f}"]
    product = ""
    for k in range(1, c.size):
        product += _binomial(float(nodes[k - 1]), node_decimals)
        value = float(c[k])
        sign = "-" if value < 0 else "+"
        parts.append(f" {sign} {abs(value):.{coef_decimals}f}{product}")
    return "".join(parts)


def _binomial(node: float, decimals: int) -> str:
    node = round(node, decimals) + 0.0
    if node < 0:
        return f"(x + {-node:.{decimals}f})"
    return f"(x - {node:.{decimals}f})"


# ===========================================================================
# Lagrange
# ===========================================================================

def evaluate_lagrange(x: Scalar, xs: ArrayLike, ys: ArrayLike) -> Scalar:
    """Sum of ``ys[i] * prod_{j != i} (x - xs[j]) / (xs[i] - xs[j])``.

    Coinciding nodes make a basis denominator zero; the whole evaluation is
    then NaN and a warning is logged.
    """
    nodes = np.asarray(xs, dtype=np.float64)
    values = np.asarray(ys, dtype=np.float64)
    x_arr = np.asarray(x, dtype=np.float64)
    n = nodes.size

    if n == 0 or values.size != n:
        return _like_input(x, np.full_like(x_arr, np.nan))

    gaps = nodes[:, None] - nodes[None, :]
    clash = (gaps == 0.0) & ~np.eye(n, dtype=bool)
    if clash.any():
        i, _ = np.argwhere(clash)[0]
        logger.warning("Lagrange evaluation failed: duplicate x=%r among nodes", float(nodes[i]))
        return _like_input(x, np.full_like(x_arr, np.nan))

    total = np.zeros_like(x_arr)
    for i in range(n):
        term = np.full_like(x_arr, values[i])
        for j in range(n):
            if j != i:
                term = term * (x_arr - nodes[j]) / gaps[i, j]
        total = total + term
    return _like_input(x, total)


def _like_input(x: Scalar, result: FloatArray) -> Scalar:
    if np.ndim(x) == 0:
        return float(result)
    return result


# ===========================================================================
# Fitting
# ===========================================================================

def fit_curve(
    nodes: FitInput,
    method: InterpolationMethod,
    coef_decimals: int = 2,
    node_decimals: int = 1,
) -> CurveFit:
    """Build an evaluator and formula string over *nodes*.

    Raises InsufficientPointsError for fewer than two nodes and
    DuplicateXError when the Newton table cannot be built.
    """
    if len(nodes) < 2:
        raise InsufficientPointsError(len(nodes))

    if method is InterpolationMethod.NEWTON:
        coefficients = divided_differences(nodes.xs, nodes.ys)
        logger.debug("Newton fit over %d nodes: %s", len(nodes), coefficients)
        return CurveFit(
            method=method,
            evaluate=partial(evaluate_newton, xs=nodes.xs, coefficients=coefficients),
            formula=format_newton_formula(nodes.xs, coefficients, coef_decimals, node_decimals),
            nodes=nodes,
            coefficients=coefficients,
        )

    logger.debug("Lagrange fit over %d nodes", len(nodes))
    return CurveFit(
        method=method,
        evaluate=partial(evaluate_lagrange, xs=nodes.xs, ys=nodes.ys),
        formula=LAGRANGE_FORMULA_TEXT,
        nodes=nodes,
    )
