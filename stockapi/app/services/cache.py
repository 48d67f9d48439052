"""Freshness-tiered in-process cache.

Entries are routed to one of three tiers by the size of the request's time
window. Each tier expires entries lazily on read and eagerly from its own
background sweeper thread.

Two callers that miss on the same key at the same time will both compute and
both ``put``; the second write wins. Results are deterministic for the same
inputs, so only work is wasted.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from stockapi.app.config import Settings, get_settings
from stockapi.app.constants import TIER_SPECS, TierSpec

logger = logging.getLogger(__name__)


class _Miss:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


class Tier(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class CacheKind(str, Enum):
    HISTORY = "history"
    STOCK_PRICE = "stock_price"
    CORRELATION = "correlation"


# Characters that delimit key components; never valid inside one.
KEY_SEPARATORS = (":", ",")


class CacheKeyError(ValueError):
    """Raised when cache key parameters are missing or malformed."""


@dataclass
class CacheEntry:
    key: str
    value: Any
    tier: Tier
    expires_at: Optional[float]

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


def select_tier(minutes: float, specs: Optional[Mapping[str, TierSpec]] = None) -> Tier:
    """Pick the tier for a request covering ``minutes`` of history."""

    specs = specs or TIER_SPECS
    if minutes <= specs[Tier.SHORT.value].max_minutes:
        return Tier.SHORT
    if minutes <= specs[Tier.MEDIUM.value].max_minutes:
        return Tier.MEDIUM
    return Tier.LONG


def _token(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    text = str(value)
    if not text or any(sep in text for sep in KEY_SEPARATORS):
        raise CacheKeyError(f"Invalid cache key component {value!r}")
    return text


def build_cache_key(kind: Union[CacheKind, str], params: Mapping[str, Any]) -> str:
    """Construct a namespaced key for a request kind and its parameters.

    Correlation tickers are sorted so (A, B) and (B, A) share one entry.
    """

    try:
        resolved = CacheKind(kind)
    except ValueError as exc:
        raise CacheKeyError(f"Unknown cache kind {kind!r}") from exc

    try:
        minutes = _token(params["minutes"])
        if resolved is CacheKind.HISTORY:
            return f"history:{_token(params['ticker'])}:{minutes}"
        if resolved is CacheKind.STOCK_PRICE:
            return f"stock:{_token(params['ticker'])}:{minutes}:{_token(params['aggregation'])}"
        tickers = sorted(_token(t) for t in params["tickers"])
    except KeyError as exc:
        raise CacheKeyError(f"Missing cache key parameter {exc.args[0]!r} for {resolved.value}") from exc
    if len(tickers) != 2:
        raise CacheKeyError(f"Correlation keys need exactly two tickers, got {len(tickers)}")
    return f"corr:{','.join(tickers)}:{minutes}"


class CacheTier:
    """One tier: a locked dict of entries plus an optional sweeper thread."""

    def __init__(
        self,
        tier: Tier,
        ttl_seconds: float,
        check_period_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tier = tier
        self.ttl_seconds = ttl_seconds
        self.check_period_seconds = check_period_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.hits = 0
        self.misses = 0
        self.expired = 0

    # ---------- entry access ----------
    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expired(self._clock()):
                del self._entries[key]
                self.expired += 1
                entry = None
            if entry is None:
                self.misses += 1
                return MISS
            self.hits += 1
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            raise ValueError(f"TTL must not be negative, got {ttl}")
        stored = copy.deepcopy(value)
        with self._lock:
            expires_at = None if ttl == 0 else self._clock() + ttl
            self._entries[key] = CacheEntry(key=key, value=stored, tier=self.tier, expires_at=expires_at)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def delete_matching(self, substring: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if substring in key]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""

        with self._lock:
            now = self._clock()
            doomed = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in doomed:
                del self._entries[key]
            self.expired += len(doomed)
        if doomed:
            logger.debug("Swept %s expired %s-tier entries", len(doomed), self.tier.value)
        return len(doomed)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "keys": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "expired": self.expired,
            }

    # ---------- sweeper lifecycle ----------
    def _sweep_worker(self) -> None:
        while not self._stop.wait(self.check_period_seconds):
            try:
                self.sweep()
            except Exception:  # pragma: no cover - keep the sweeper alive
                logger.warning("Cache sweep failed for %s tier", self.tier.value, exc_info=True)

    def start(self) -> None:
        if self.check_period_seconds <= 0:
            return
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._sweep_worker,
            name=f"cache-sweep-{self.tier.value}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        if not self._thread:
            return
        self._stop.set()
        self._thread.join(timeout=timeout)
        self._thread = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())


class TieredCache:
    """Short, medium and long freshness tiers behind a request-level API."""

    def __init__(
        self,
        specs: Optional[Mapping[str, TierSpec]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.specs: Dict[str, TierSpec] = dict(specs or TIER_SPECS)
        self.tiers: Dict[Tier, CacheTier] = {
            tier: CacheTier(
                tier,
                ttl_seconds=self.specs[tier.value].ttl_seconds,
                check_period_seconds=self.specs[tier.value].check_period_seconds,
                clock=clock,
            )
            for tier in Tier
        }

    def tier_for(self, params: Mapping[str, Any]) -> CacheTier:
        try:
            minutes = float(params["minutes"])
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheKeyError("Cache parameters need a numeric 'minutes' window") from exc
        return self.tiers[select_tier(minutes, self.specs)]

    def get(self, kind: Union[CacheKind, str], params: Mapping[str, Any]) -> Any:
        """Return a copy of the cached value, or ``MISS``."""

        key = build_cache_key(kind, params)
        value = self.tier_for(params).get(key)
        if value is MISS:
            logger.debug("Cache miss for %s", key)
        else:
            logger.debug("Cache hit for %s", key)
        return value

    def put(
        self,
        kind: Union[CacheKind, str],
        params: Mapping[str, Any],
        value: Any,
        ttl: Optional[float] = None,
    ) -> None:
        key = build_cache_key(kind, params)
        self.tier_for(params).set(key, value, ttl)

    def invalidate(self, substring: str) -> int:
        """Remove every entry, in any tier, whose key contains ``substring``."""

        removed = sum(tier.delete_matching(substring) for tier in self.tiers.values())
        logger.info("Invalidated %s cache entries matching %r", removed, substring)
        return removed

    def sweep(self) -> int:
        return sum(tier.sweep() for tier in self.tiers.values())

    def stats(self) -> dict[str, dict[str, int]]:
        return {tier.value: cache_tier.stats() for tier, cache_tier in self.tiers.items()}

    def start(self) -> None:
        for cache_tier in self.tiers.values():
            cache_tier.start()

    def stop(self) -> None:
        for cache_tier in self.tiers.values():
            cache_tier.stop()

    def __enter__(self) -> "TieredCache":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


def build_cache(settings: Optional[Settings] = None, clock: Callable[[], float] = time.monotonic) -> TieredCache:
    """Build a cache from the configured tier specs."""

    settings = settings or get_settings()
    return TieredCache(settings.tiers, clock=clock)


def format_stats(stats: Mapping[str, Mapping[str, int]], tiers: Iterable[str] = ("short", "medium", "long")) -> str:
    return ", ".join(f"{name}={stats[name]['keys']}" for name in tiers if name in stats)


__all__ = [
    "MISS",
    "CacheEntry",
    "CacheKeyError",
    "CacheKind",
    "CacheTier",
    "Tier",
    "TieredCache",
    "build_cache",
    "build_cache_key",
    "format_stats",
    "select_tier",
]
