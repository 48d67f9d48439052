from __future__ import annotations

import threading

import pytest
from fastapi import HTTPException

from stockapi.app.services.cache import TieredCache
from stockapi.app.services.price_service import PriceService

from _helpers import FakeClock, point


class BlockingUpstream:
    """Each fetch waits until both tickers of a pair are in flight."""

    def __init__(self, parties: int = 2) -> None:
        self.barrier = threading.Barrier(parties, timeout=5)
        self.threads: set[str] = set()

    def fetch_price_history(self, ticker: str, minutes: int):
        self.threads.add(threading.current_thread().name)
        self.barrier.wait()
        return [point(0, 10.0), point(60, 12.0)] if ticker == "AAPL" else [point(0, 20.0), point(60, 18.0)]


class FailingUpstream:
    def fetch_price_history(self, ticker: str, minutes: int):
        raise HTTPException(status_code=404, detail=f"{ticker} unknown")


def test_correlation_fetches_both_histories_concurrently() -> None:
    upstream = BlockingUpstream()
    service = PriceService(cache=TieredCache(clock=FakeClock()), client=upstream)

    response = service.correlation(["AAPL", "MSFT"], 60)

    assert response.correlation == pytest.approx(-1.0)
    assert len(upstream.threads) == 2
    assert list(response.stocks) == ["AAPL", "MSFT"]


def test_correlation_propagates_fetch_errors() -> None:
    service = PriceService(cache=TieredCache(clock=FakeClock()), client=FailingUpstream())

    with pytest.raises(HTTPException) as excinfo:
        service.correlation(["AAPL", "MSFT"], 60)

    assert excinfo.value.status_code == 404
