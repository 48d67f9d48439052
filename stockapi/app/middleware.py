"""Per-client rate limiting and access logging."""

from __future__ import annotations

import logging
import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again after a while"
# Health checks stay reachable regardless of client traffic.
UNLIMITED_PATHS = frozenset({"/health"})


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int


class SlidingWindowRateLimiter:
    """In-memory sliding window: at most ``max_requests`` per client per ``window_seconds``."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, client: str) -> RateDecision:
        now = self._clock()
        hits = self._hits[client]
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
            return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

        hits.append(now)
        if len(self._hits) > 1000:
            for stale in [key for key, value in self._hits.items() if not value]:
                del self._hits[stale]
        return RateDecision(allowed=True, remaining=self.max_requests - len(hits), retry_after=0)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: SlidingWindowRateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        decision = self.limiter.hit(client_ip)
        headers = {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(decision.remaining),
        }
        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            headers["Retry-After"] = str(decision.retry_after)
            return JSONResponse(status_code=429, content={"detail": RATE_LIMIT_MESSAGE}, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response


def install_access_log(app: FastAPI) -> None:
    """Log one line per request: method, URL, user agent, status and latency."""

    @app.middleware("http")
    async def _access_log(request: Request, call_next):
        start = time.perf_counter()
        target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        agent = request.headers.get("user-agent", "Unknown UA")
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.info("%s %s - %s - 500 - %.1f ms", request.method, target, agent, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info("%s %s - %s - %s - %.1f ms", request.method, target, agent, response.status_code, elapsed_ms)
        return response
