from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Listing:
    name: str
    sector: str
    base_price: float


@dataclass(frozen=True)
class TrendProfile:
    name: str
    volatility: float
    bias: float
    cyclical: bool = False


LISTINGS: Dict[str, Listing] = {
    "AAPL": Listing("Apple Inc.", "Technology", 175.50),
    "MSFT": Listing("Microsoft Corp.", "Technology", 320.75),
    "GOOGL": Listing("Alphabet Inc.", "Technology", 135.60),
    "AMZN": Listing("Amazon.com Inc.", "Consumer Cyclical", 131.25),
    "TSLA": Listing("Tesla Inc.", "Automotive", 245.30),
    "META": Listing("Meta Platforms Inc.", "Technology", 325.15),
    "NVDA": Listing("NVIDIA Corp.", "Technology", 450.80),
    "PYPL": Listing("PayPal Holdings Inc.", "Financial Services", 62.50),
    "NFLX": Listing("Netflix Inc.", "Communication Services", 385.40),
}

TREND_PROFILES: List[TrendProfile] = [
    TrendProfile("upward", 0.02, 0.001),
    TrendProfile("downward", 0.018, -0.001),
    TrendProfile("volatile", 0.04, 0.0),
    TrendProfile("stable", 0.005, 0.0),
    TrendProfile("cyclical", 0.01, 0.0, cyclical=True),
]


def trend_for_ticker(ticker: str) -> TrendProfile:
    """Stable per-ticker profile picked from the ticker's character sum."""
    return TREND_PROFILES[sum(ord(ch) for ch in ticker) % len(TREND_PROFILES)]


def quote(base_price: float, rng: Optional[random.Random] = None) -> float:
    """A price within 5% of ``base_price``, rounded to cents."""

    rng = rng or random.Random()
    deviation = (rng.random() * 2 - 1) * base_price * 0.05
    return round(base_price + deviation, 2)


def _apply_trend(price: float, trend: TrendProfile, minutes_ago: int, rng: random.Random) -> float:
    movement = (rng.random() * 2 - 1) * trend.volatility * price
    movement += price * trend.bias
    if trend.cyclical:
        position = (minutes_ago % 60) / 60
        movement += price * math.sin(position * math.pi * 2) * 0.01
    return price + movement


def generate_price_history(
    ticker: str,
    base_price: float,
    entries: int = 20,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Random history over the last two hours, skewed towards recent timestamps."""

    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    trend = trend_for_ticker(ticker)
    price = base_price * (0.95 + rng.random() * 0.1)

    samples: list[tuple[datetime, float]] = []
    for _ in range(entries):
        minutes_ago = int(rng.random() * rng.random() * 120)
        price = max(_apply_trend(price, trend, minutes_ago, rng), 0.01)
        samples.append((now - timedelta(minutes=minutes_ago), round(price, 5)))

    samples.sort(key=lambda sample: sample[0])
    return [{"price": price, "lastUpdatedAt": ts.isoformat()} for ts, price in samples]
