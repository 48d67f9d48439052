"""Statistics, alignment and analytics entry points."""

from stockapi.app.compute.alignment import AlignedPair, align_series
from stockapi.app.compute.analytics import CorrelationResult, compute_aggregation, compute_correlation
from stockapi.app.compute.statistics import aggregate, correlation, covariance, mean, median, stddev

__all__ = [
    "AlignedPair",
    "align_series",
    "CorrelationResult",
    "compute_aggregation",
    "compute_correlation",
    "aggregate",
    "correlation",
    "covariance",
    "mean",
    "median",
    "stddev",
]
