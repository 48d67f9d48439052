from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from stockapi.app.compute.alignment import align_series
from stockapi.app.compute.statistics import aggregate, correlation
from stockapi.app.schemas import AggregationKind, PricePoint


@dataclass
class CorrelationResult:
    value: float
    aligned_a: List[PricePoint] = field(default_factory=list)
    aligned_b: List[PricePoint] = field(default_factory=list)


def compute_aggregation(
    series: Sequence[PricePoint],
    kind: Union[AggregationKind, str] = AggregationKind.AVERAGE,
) -> Optional[float]:
    """Aggregate the prices of a series; ``None`` only when the series is empty."""

    if not series:
        return None
    return aggregate([point.price for point in series], kind)


def compute_correlation(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> CorrelationResult:
    """Align two series and correlate their prices.

    Callers reject inputs with fewer than two points per side beforehand.
    """

    aligned = align_series(series_a, series_b)
    prices_a, prices_b = aligned.prices()
    return CorrelationResult(
        value=correlation(prices_a, prices_b),
        aligned_a=aligned.first,
        aligned_b=aligned.second,
    )
