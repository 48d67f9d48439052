from __future__ import annotations

from typing import List, Optional

from fastapi import HTTPException, Path, Query, Request, status

from .constants import (
    DEFAULT_CORRELATION_MINUTES,
    DEFAULT_PRICE_MINUTES,
    MAX_WINDOW_MINUTES,
    MIN_WINDOW_MINUTES,
    TICKER_PATTERN,
)
from .schemas import AggregationKind
from .services.price_service import PriceService


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _parse_minutes(raw: Optional[str], default: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        minutes = int(raw)
    except ValueError:
        raise _bad_request(f"Minutes must be a positive number up to {MAX_WINDOW_MINUTES}")
    if minutes < MIN_WINDOW_MINUTES or minutes > MAX_WINDOW_MINUTES:
        raise _bad_request(f"Minutes must be a positive number up to {MAX_WINDOW_MINUTES}")
    return minutes


def _normalize_ticker(raw: str) -> Optional[str]:
    ticker = raw.strip().upper()
    return ticker if TICKER_PATTERN.match(ticker) else None


class StockQueryParams:
    def __init__(
        self,
        ticker: str = Path(..., description="Stock ticker symbol"),
        minutes: Optional[str] = Query(default=None, description="Minutes of history to aggregate"),
        aggregation: str = Query(default=AggregationKind.AVERAGE.value, description="average, median, min or max"),
    ):
        normalized = _normalize_ticker(ticker)
        if normalized is None:
            raise _bad_request("Valid stock ticker symbol is required")
        try:
            self.aggregation = AggregationKind(aggregation)
        except ValueError:
            allowed = ", ".join(kind.value for kind in AggregationKind)
            raise _bad_request(f"Aggregation must be one of: {allowed}")
        self.ticker = normalized
        self.minutes = _parse_minutes(minutes, DEFAULT_PRICE_MINUTES)


class CorrelationQueryParams:
    def __init__(
        self,
        ticker: List[str] = Query(default_factory=list, description="Exactly two stock ticker symbols"),
        minutes: Optional[str] = Query(default=None, description="Minutes of history to correlate"),
    ):
        if len(ticker) != 2:
            raise _bad_request("Exactly two stock ticker symbols are required")
        tickers = [_normalize_ticker(t) for t in ticker]
        if None in tickers:
            raise _bad_request("Invalid ticker format provided")
        self.tickers: List[str] = tickers
        if self.tickers[0] == self.tickers[1]:
            raise _bad_request("Cannot calculate correlation between the same stock")
        self.minutes = _parse_minutes(minutes, DEFAULT_CORRELATION_MINUTES)


def get_price_service(request: Request) -> PriceService:
    return request.app.state.price_service
