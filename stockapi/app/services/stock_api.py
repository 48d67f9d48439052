"""Upstream stock exchange client with retries and history caching."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError
from requests import Response

from stockapi.app.config import UpstreamSettings
from stockapi.app.constants import HISTORY_TTL
from stockapi.app.schemas import PricePoint
from stockapi.app.services.cache import MISS, CacheKind, TieredCache

logger = logging.getLogger(__name__)

BACKOFF_BASE_SECONDS = 0.3
USER_AGENT = "StockAggregationService/1.0"


class UpstreamError(RuntimeError):
    """The upstream price source failed or answered with something unusable."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason
    if not isinstance(payload, dict):
        return response.reason
    for key in ("error", "message", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return response.reason


def _upstream_point(entry: Any) -> PricePoint:
    # Upstream data is observed, never synthesised.
    return PricePoint.model_validate(entry).model_copy(update={"interpolated": False})


class StockApiClient:
    """Thin wrapper over requests to talk to the upstream stock exchange API."""

    def __init__(
        self,
        settings: UpstreamSettings,
        cache: TieredCache,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.session = session or requests.Session()
        self._sleep = sleep
        self._now = now

    @property
    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "User-Agent": USER_AGENT}

    def _get_with_retry(self, path: str) -> Response:
        url = f"{self.settings.base_url}{path}"
        attempts = self.settings.retry_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self.session.get(url, headers=self.headers, timeout=self.settings.timeout_seconds)
                # 5xx answers are retried; the last one is returned for the caller to report.
                if response.status_code >= 500 and attempt < attempts:
                    raise requests.HTTPError(f"{response.status_code} from {url}", response=response)
                return response
            except requests.RequestException as exc:
                if attempt >= attempts:
                    raise
                delay = (2 ** attempt) * BACKOFF_BASE_SECONDS
                logger.info("Retry %s/%s for %s in %.1fs (%s)", attempt, attempts, url, delay, exc)
                self._sleep(delay)

    def _request_json(self, path: str) -> Any:
        try:
            response = self._get_with_retry(path)
        except requests.Timeout as exc:
            raise UpstreamError(504, "Stock Exchange API timeout") from exc
        except requests.ConnectionError as exc:
            raise UpstreamError(504, f"Stock Exchange API unreachable: {exc}") from exc
        except requests.RequestException as exc:
            status = exc.response.status_code if exc.response is not None else 502
            raise UpstreamError(status, f"Stock API error: {exc}") from exc

        if not response.ok:
            raise UpstreamError(response.status_code, f"Stock API error: {_error_message(response)}")

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(502, "Invalid response from stock API") from exc

    def fetch_price_history(self, ticker: str, minutes: int) -> List[PricePoint]:
        """Price history for ``ticker`` over the last ``minutes``, oldest first."""

        params = {"ticker": ticker, "minutes": minutes}
        cached = self.cache.get(CacheKind.HISTORY, params)
        if cached is not MISS:
            logger.debug("Cache hit for %s history data", ticker)
            return cached

        logger.info("Fetching price history for %s for the last %s minutes", ticker, minutes)
        threshold = self._now() - timedelta(minutes=minutes)
        payload = self._request_json(f"/stocks/{ticker}/history")

        raw_history = payload.get("priceHistory") if isinstance(payload, dict) else None
        if not isinstance(raw_history, list):
            raise UpstreamError(502, "Invalid response from stock API")
        try:
            points = [_upstream_point(entry) for entry in raw_history]
        except ValidationError as exc:
            raise UpstreamError(502, f"Malformed price history for {ticker}: {exc.error_count()} invalid entries") from exc

        history = sorted((p for p in points if p.timestamp >= threshold), key=lambda p: p.timestamp)
        self.cache.put(CacheKind.HISTORY, params, history, ttl=HISTORY_TTL.derive(minutes))
        return history
