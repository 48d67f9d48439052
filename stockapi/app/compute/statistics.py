"""Descriptive statistics over price lists.

Every function is total: degenerate inputs (empty, a single value, a constant
series, mismatched lengths) return ``0.0`` instead of raising. Non-numeric
values are rejected by numpy with ``ValueError``.
"""

from __future__ import annotations

from typing import Iterable, Union

import numpy as np

from stockapi.app.schemas import AggregationKind


def _as_array(values: Iterable[float]) -> np.ndarray:
    if isinstance(values, np.ndarray):
        return values.astype(float, copy=False)
    return np.asarray(list(values), dtype=float)


def _is_constant(arr: np.ndarray) -> bool:
    return bool(np.all(arr == arr[0]))


def mean(xs: Iterable[float]) -> float:
    arr = _as_array(xs)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def median(xs: Iterable[float]) -> float:
    """Middle value; the average of the two central values for even lengths."""

    arr = _as_array(xs)
    if arr.size == 0:
        return 0.0
    # np.median sorts a copy, so the caller's list keeps its order.
    return float(np.median(arr))


def stddev(xs: Iterable[float]) -> float:
    """Sample standard deviation (N-1 denominator)."""

    arr = _as_array(xs)
    if arr.size <= 1 or _is_constant(arr):
        return 0.0
    return float(arr.std(ddof=1))


def covariance(xs: Iterable[float], ys: Iterable[float]) -> float:
    """Sample covariance (N-1 denominator)."""

    x = _as_array(xs)
    y = _as_array(ys)
    if x.size != y.size or x.size <= 1:
        return 0.0
    return float(((x - x.mean()) * (y - y.mean())).sum() / (x.size - 1))


def correlation(xs: Iterable[float], ys: Iterable[float]) -> float:
    """Pearson correlation coefficient, unclamped.

    A constant series has no defined correlation; 0.0 is returned for it.
    """

    x = _as_array(xs)
    y = _as_array(ys)
    if x.size != y.size or x.size <= 1:
        return 0.0

    sx = stddev(x)
    sy = stddev(y)
    if sx == 0 or sy == 0:
        return 0.0
    return covariance(x, y) / (sx * sy)


def clamp_correlation(value: float) -> float:
    """Clip floating point overshoot into [-1, 1] for display."""
    return max(-1.0, min(1.0, value))


def _resolve_kind(kind: Union[AggregationKind, str, None]) -> AggregationKind:
    if isinstance(kind, AggregationKind):
        return kind
    try:
        return AggregationKind(str(kind).lower())
    except ValueError:
        # Unknown kinds fall back to the average.
        return AggregationKind.AVERAGE


def aggregate(xs: Iterable[float], kind: Union[AggregationKind, str, None] = AggregationKind.AVERAGE) -> float:
    arr = _as_array(xs)
    resolved = _resolve_kind(kind)
    if arr.size == 0:
        return 0.0
    if resolved is AggregationKind.MEDIAN:
        return median(arr)
    if resolved is AggregationKind.MIN:
        return float(arr.min())
    if resolved is AggregationKind.MAX:
        return float(arr.max())
    return mean(arr)


__all__ = [
    "aggregate",
    "clamp_correlation",
    "correlation",
    "covariance",
    "mean",
    "median",
    "stddev",
]
