from __future__ import annotations

from datetime import datetime, timedelta, timezone

from stockapi.app.schemas import PricePoint

BASE_TIME = datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return BASE_TIME + timedelta(seconds=seconds)


def point(seconds: float, price: float) -> PricePoint:
    return PricePoint(timestamp=at(seconds), price=price)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
