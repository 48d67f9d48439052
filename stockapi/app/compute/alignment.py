from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from stockapi.app.schemas import PricePoint

MIN_ALIGNED_POINTS = 2


@dataclass(frozen=True)
class AlignedPair:
    first: List[PricePoint] = field(default_factory=list)
    second: List[PricePoint] = field(default_factory=list)

    def prices(self) -> tuple[list[float], list[float]]:
        return [p.price for p in self.first], [p.price for p in self.second]


def _lookup(series: Sequence[PricePoint]) -> Dict[datetime, PricePoint]:
    # Later duplicates overwrite earlier ones.
    return {point.timestamp: point for point in series}


def _anchors(timeline: List[datetime], lookup: Dict[datetime, PricePoint]) -> tuple[list[Optional[int]], list[Optional[int]]]:
    """For each timeline position, the index of the nearest real point strictly before and after it."""

    size = len(timeline)
    before: list[Optional[int]] = [None] * size
    after: list[Optional[int]] = [None] * size

    last: Optional[int] = None
    for i, ts in enumerate(timeline):
        before[i] = last
        if ts in lookup:
            last = i

    last = None
    for i in range(size - 1, -1, -1):
        after[i] = last
        if timeline[i] in lookup:
            last = i

    return before, after


def _resolve(
    ts: datetime,
    lookup: Dict[datetime, PricePoint],
    before: Optional[datetime],
    after: Optional[datetime],
) -> Optional[PricePoint]:
    exact = lookup.get(ts)
    if exact is not None:
        return exact

    if before is not None and after is not None:
        lo = lookup[before]
        hi = lookup[after]
        ratio = (ts - before).total_seconds() / (after - before).total_seconds()
        return PricePoint(
            timestamp=ts,
            price=lo.price + (hi.price - lo.price) * ratio,
            interpolated=True,
        )
    # Only one side has data: reuse that point as-is rather than extrapolate.
    if before is not None:
        return lookup[before]
    if after is not None:
        return lookup[after]
    return None


def _interpolate(
    timeline: List[datetime],
    first: Dict[datetime, PricePoint],
    second: Dict[datetime, PricePoint],
) -> AlignedPair:
    first_before, first_after = _anchors(timeline, first)
    second_before, second_after = _anchors(timeline, second)

    def at(indices: list[Optional[int]], i: int) -> Optional[datetime]:
        idx = indices[i]
        return None if idx is None else timeline[idx]

    out_first: List[PricePoint] = []
    out_second: List[PricePoint] = []
    for i, ts in enumerate(timeline):
        a = _resolve(ts, first, at(first_before, i), at(first_after, i))
        b = _resolve(ts, second, at(second_before, i), at(second_after, i))
        # A timestamp that one side cannot anchor is dropped from both sides,
        # even when the other side has a real point there.
        if a is None or b is None:
            continue
        out_first.append(a)
        out_second.append(b)
    return AlignedPair(out_first, out_second)


def align_series(first: Sequence[PricePoint], second: Sequence[PricePoint]) -> AlignedPair:
    """Pair up two independently sampled price series by timestamp.

    Timestamps present in both series are used when there are at least two of
    them. Otherwise every timestamp of either series is kept and the missing
    side is linearly interpolated between its neighbouring real points (or
    copied from its single neighbour at the edges of its data range).

    With one distinct timestamp or none, the inputs are returned unchanged and
    the two sides may differ in length; callers needing a correlation must
    check both lengths themselves.
    """

    first_lookup = _lookup(first)
    second_lookup = _lookup(second)
    timeline = sorted(set(first_lookup) | set(second_lookup))

    if len(timeline) <= 1:
        return AlignedPair(list(first), list(second))

    shared = [ts for ts in timeline if ts in first_lookup and ts in second_lookup]
    if len(shared) >= MIN_ALIGNED_POINTS:
        return AlignedPair(
            [first_lookup[ts] for ts in shared],
            [second_lookup[ts] for ts in shared],
        )

    return _interpolate(timeline, first_lookup, second_lookup)


__all__ = ["AlignedPair", "MIN_ALIGNED_POINTS", "align_series"]
