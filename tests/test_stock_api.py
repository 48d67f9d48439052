from __future__ import annotations

from datetime import timedelta

import pytest
import requests

from stockapi.app.config import UpstreamSettings
from stockapi.app.services.cache import TieredCache
from stockapi.app.services.stock_api import StockApiClient, UpstreamError

from _helpers import BASE_TIME, FakeClock


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, reason: str = "OK") -> None:
        self.status_code = status_code
        self._payload = payload
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, outcomes) -> None:
        self.outcomes = list(outcomes)
        self.urls: list[str] = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _history_payload():
    return {
        "ticker": "AAPL",
        "priceHistory": [
            {"price": 12.0, "lastUpdatedAt": (BASE_TIME - timedelta(minutes=2)).isoformat()},
            {"price": 10.0, "lastUpdatedAt": (BASE_TIME - timedelta(minutes=90)).isoformat()},
            {"price": 11.0, "lastUpdatedAt": (BASE_TIME - timedelta(minutes=4)).isoformat()},
        ],
    }


def _client(session, retry_attempts: int = 3, sleeps=None) -> StockApiClient:
    sleeps = sleeps if sleeps is not None else []
    return StockApiClient(
        UpstreamSettings(base_url="http://upstream", timeout_seconds=1.0, retry_attempts=retry_attempts),
        TieredCache(clock=FakeClock()),
        session=session,
        sleep=sleeps.append,
        now=lambda: BASE_TIME,
    )


def test_history_is_filtered_to_window_and_sorted() -> None:
    session = FakeSession([FakeResponse(payload=_history_payload())])

    history = _client(session).fetch_price_history("AAPL", 5)

    assert [p.price for p in history] == [11.0, 12.0]
    assert session.urls == ["http://upstream/stocks/AAPL/history"]


def test_history_is_served_from_cache() -> None:
    session = FakeSession([FakeResponse(payload=_history_payload())])
    client = _client(session)

    first = client.fetch_price_history("AAPL", 120)
    second = client.fetch_price_history("AAPL", 120)

    assert first == second
    assert len(session.urls) == 1


def test_retries_with_exponential_backoff() -> None:
    sleeps: list[float] = []
    session = FakeSession(
        [
            requests.ConnectionError("refused"),
            FakeResponse(status_code=503, payload={}, reason="Unavailable"),
            FakeResponse(payload=_history_payload()),
        ]
    )

    history = _client(session, sleeps=sleeps).fetch_price_history("AAPL", 120)

    assert len(history) == 3
    assert sleeps == pytest.approx([0.6, 1.2])


def test_timeout_after_last_attempt_maps_to_504() -> None:
    session = FakeSession([requests.Timeout("slow"), requests.Timeout("slow")])

    with pytest.raises(UpstreamError) as excinfo:
        _client(session, retry_attempts=2).fetch_price_history("AAPL", 5)

    assert excinfo.value.status_code == 504


def test_upstream_status_is_propagated() -> None:
    session = FakeSession([FakeResponse(status_code=404, payload={"error": "Stock ticker XYZ not found"})])

    with pytest.raises(UpstreamError) as excinfo:
        _client(session).fetch_price_history("XYZ", 5)

    assert excinfo.value.status_code == 404
    assert "not found" in excinfo.value.message


@pytest.mark.parametrize(
    "payload",
    [
        {"ticker": "AAPL"},
        {"priceHistory": "nope"},
        {"priceHistory": [{"price": "abc", "lastUpdatedAt": "2024-03-01T14:29:00Z"}]},
        {"priceHistory": [{"price": 1.0, "lastUpdatedAt": "yesterday"}]},
        ValueError("not json"),
    ],
)
def test_invalid_payloads_map_to_502(payload) -> None:
    session = FakeSession([FakeResponse(payload=payload)])

    with pytest.raises(UpstreamError) as excinfo:
        _client(session).fetch_price_history("AAPL", 5)

    assert excinfo.value.status_code == 502


def test_upstream_points_are_never_marked_interpolated() -> None:
    payload = {
        "priceHistory": [
            {"price": 12.0, "lastUpdatedAt": (BASE_TIME - timedelta(minutes=1)).isoformat(), "interpolated": True},
        ]
    }
    session = FakeSession([FakeResponse(payload=payload)])

    history = _client(session).fetch_price_history("AAPL", 5)

    assert [p.interpolated for p in history] == [False]


def test_fastapi_error_detail_is_propagated() -> None:
    session = FakeSession(
        [FakeResponse(status_code=404, payload={"detail": "Stock ticker XYZ not found"}, reason="Not Found")]
    )

    with pytest.raises(UpstreamError) as excinfo:
        _client(session).fetch_price_history("XYZ", 5)

    assert excinfo.value.message == "Stock API error: Stock ticker XYZ not found"
