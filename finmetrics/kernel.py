"""Null-safe numeric kernel.

Every function accepts optional operands and returns an optional result.
``None`` is the only failure signal: missing operands, zero divisors,
empty inputs and out-of-domain parameters all yield ``None`` instead of
raising, so formulas compose by chaining optional values.

Statistics use population (not sample) formulas.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np


def to_optional_float(value: object) -> float | None:
    """Coerce a scalar to a finite float.

    Args:
        value: Scalar value (may be None, NaN, a numeric string, or garbage).

    Returns:
        Finite float, or None on any failure.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return f


# === Guarded arithmetic ===


def safe_divide(a: float | None, b: float | None) -> float | None:
    """Divide a by b; None if either is missing or b is zero."""
    if a is None or b is None or b == 0:
        return None
    return a / b


def safe_multiply(*values: float | None) -> float | None:
    """Multiply all operands; None if any is missing."""
    if not values or any(v is None for v in values):
        return None
    return math.prod(values)  # type: ignore[arg-type]


def safe_add(*values: float | None) -> float | None:
    """Sum all operands; None if any is missing."""
    if not values or any(v is None for v in values):
        return None
    return math.fsum(values)  # type: ignore[arg-type]


def safe_subtract(a: float | None, b: float | None) -> float | None:
    """Subtract b from a; None if either is missing."""
    if a is None or b is None:
        return None
    return a - b


# === Statistics ===


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def mean(values: Sequence[float]) -> float | None:
    """Arithmetic mean; None on empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return None
    return float(arr.mean())


def variance(values: Sequence[float]) -> float | None:
    """Population variance; None on empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return None
    return float(arr.var(ddof=0))


def standard_deviation(values: Sequence[float]) -> float | None:
    """Population standard deviation; None on empty input."""
    var = variance(values)
    if var is None:
        return None
    return math.sqrt(var)


def covariance(x: Sequence[float], y: Sequence[float]) -> float | None:
    """Population covariance of two equal-length series.

    Returns:
        sum((x_i - mean(x)) * (y_i - mean(y))) / n, or None if the series
        are empty or differ in length.
    """
    xa = _as_array(x)
    ya = _as_array(y)
    if xa.size == 0 or xa.size != ya.size:
        return None
    return float(np.mean((xa - xa.mean()) * (ya - ya.mean())))


def downside_deviation(
    returns: Sequence[float], target: float = 0.0
) -> float | None:
    """Root-mean-square shortfall below a target return.

    Every observation counts in the denominator; returns at or above the
    target contribute zero.

    Args:
        returns: Period returns.
        target: Minimum acceptable return per period.

    Returns:
        sqrt(mean(min(0, r - target)^2)), or None on empty input.
    """
    arr = _as_array(returns)
    if arr.size == 0:
        return None
    shortfall = np.minimum(0.0, arr - target)
    return float(np.sqrt(np.mean(shortfall ** 2)))


def calculate_cagr(
    end_value: float | None,
    start_value: float | None,
    periods: float | None,
) -> float | None:
    """Compound annual growth rate.

    Args:
        end_value: Value at the end of the window.
        start_value: Value at the start of the window. Must be positive.
        periods: Number of compounding periods. Must be positive.

    Returns:
        (end / start) ** (1 / periods) - 1, or None if undefined.
    """
    if end_value is None or start_value is None or periods is None:
        return None
    if start_value <= 0 or periods <= 0:
        return None
    ratio = end_value / start_value
    if ratio < 0:
        # Fractional power of a negative number has no real value.
        return None
    return ratio ** (1.0 / periods) - 1.0


def percentage_change(
    current: float | None, previous: float | None
) -> float | None:
    """Fractional change relative to the magnitude of the previous value."""
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / abs(previous)


def normalize_to_scale(value: float, low: float, high: float) -> float:
    """Map value linearly from [low, high] onto [0, 100]."""
    if high == low:
        return 50.0
    return (value - low) / (high - low) * 100.0


def clamp(value: float, low: float, high: float) -> float:
    """Limit value to [low, high]."""
    return max(low, min(high, value))
