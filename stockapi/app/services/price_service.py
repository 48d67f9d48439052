from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from fastapi import HTTPException, status

from stockapi.app.compute.alignment import MIN_ALIGNED_POINTS
from stockapi.app.compute.analytics import compute_aggregation, compute_correlation
from stockapi.app.config import Settings, get_settings
from stockapi.app.constants import CORRELATION_DECIMALS, CORRELATION_TTL, STOCK_PRICE_TTL
from stockapi.app.schemas import (
    AggregationKind,
    CacheInvalidationResponse,
    CorrelationResponse,
    PricePoint,
    StockPriceResponse,
    StockSummary,
)
from stockapi.app.services.cache import MISS, CacheKind, TieredCache, build_cache, format_stats
from stockapi.app.services.stock_api import StockApiClient, UpstreamError

logger = logging.getLogger(__name__)


def _upstream_exception(exc: UpstreamError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


class PriceService:
    """Cache-wrapped aggregation and correlation over upstream price histories."""

    def __init__(self, cache: TieredCache, client: StockApiClient) -> None:
        self.cache = cache
        self.client = client

    def _history(self, ticker: str, minutes: int) -> List[PricePoint]:
        try:
            return self.client.fetch_price_history(ticker, minutes)
        except UpstreamError as exc:
            logger.warning("Upstream fetch failed for %s: %s", ticker, exc.message)
            raise _upstream_exception(exc) from exc

    def stock_price(self, ticker: str, minutes: int, aggregation: AggregationKind) -> StockPriceResponse:
        params = {"ticker": ticker, "minutes": minutes, "aggregation": aggregation}
        cached = self.cache.get(CacheKind.STOCK_PRICE, params)
        if cached is not MISS:
            return cached

        history = self._history(ticker, minutes)
        if not history:
            # Nothing upstream for the window; not cached so the next call retries.
            return StockPriceResponse(average_stock_price=None, price_history=[])

        result = StockPriceResponse(
            average_stock_price=compute_aggregation(history, aggregation),
            price_history=history,
        )
        self.cache.put(CacheKind.STOCK_PRICE, params, result, ttl=STOCK_PRICE_TTL.derive(minutes))
        return result

    def correlation(self, tickers: Sequence[str], minutes: int) -> CorrelationResponse:
        params = {"tickers": list(tickers), "minutes": minutes}
        cached = self.cache.get(CacheKind.CORRELATION, params)
        if cached is not MISS:
            return self._reorder(cached, tickers)

        first, second = tickers
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="history-fetch") as executor:
            future_a = executor.submit(self._history, first, minutes)
            future_b = executor.submit(self._history, second, minutes)
            history_a = future_a.result()
            history_b = future_b.result()

        if not history_a or not history_b:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Insufficient data for one or both stocks in the last {minutes} minutes",
            )
        if len(history_a) < MIN_ALIGNED_POINTS or len(history_b) < MIN_ALIGNED_POINTS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Need at least 2 data points per stock for correlation. "
                    f"Available: {first}={len(history_a)}, {second}={len(history_b)}"
                ),
            )

        result = compute_correlation(history_a, history_b)
        response = CorrelationResponse(
            correlation=round(result.value, CORRELATION_DECIMALS),
            stocks={
                first: StockSummary(average_price=compute_aggregation(history_a), price_history=history_a),
                second: StockSummary(average_price=compute_aggregation(history_b), price_history=history_b),
            },
        )
        self.cache.put(CacheKind.CORRELATION, params, response, ttl=CORRELATION_TTL.derive(minutes))
        return response

    @staticmethod
    def _reorder(response: CorrelationResponse, tickers: Sequence[str]) -> CorrelationResponse:
        # (A, B) and (B, A) share a cache entry; present stocks in request order.
        stocks = {ticker: response.stocks[ticker] for ticker in tickers if ticker in response.stocks}
        return CorrelationResponse(correlation=response.correlation, stocks=stocks)

    def invalidate(self, pattern: str) -> CacheInvalidationResponse:
        return CacheInvalidationResponse(pattern=pattern, invalidated=self.cache.invalidate(pattern))

    def log_stats(self) -> None:
        logger.info("Cache stats - Keys: %s", format_stats(self.cache.stats()))


def build_price_service(settings: Optional[Settings] = None) -> PriceService:
    settings = settings or get_settings()
    cache = build_cache(settings)
    return PriceService(cache=cache, client=StockApiClient(settings.upstream, cache))
