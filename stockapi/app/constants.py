"""Cache tier specifications and caller TTL policies."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class TierSpec:
    max_minutes: float
    ttl_seconds: float
    check_period_seconds: float


# Default tier specs; the long tier has no upper bound on the window size.
TIER_SPECS: Dict[str, TierSpec] = {
    "short": TierSpec(5, 10.0, 5.0),
    "medium": TierSpec(30, 60.0, 30.0),
    "long": TierSpec(float("inf"), 300.0, 150.0),
}


@dataclass(frozen=True)
class TtlPolicy:
    scale: float
    floor: float
    ceiling: float

    def derive(self, minutes: float) -> float:
        """Shorter windows get shorter TTLs, clamped to ``[floor, ceiling]``."""
        return min(max(minutes * self.scale, self.floor), self.ceiling)


STOCK_PRICE_TTL = TtlPolicy(scale=0.1, floor=5.0, ceiling=30.0)
CORRELATION_TTL = TtlPolicy(scale=0.1, floor=10.0, ceiling=60.0)
# Raw history has no floor: a one minute window is only reused for a fraction of a second.
HISTORY_TTL = TtlPolicy(scale=0.2, floor=0.0, ceiling=60.0)

MIN_WINDOW_MINUTES = 1
MAX_WINDOW_MINUTES = 1440
DEFAULT_PRICE_MINUTES = 5
DEFAULT_CORRELATION_MINUTES = 60
CORRELATION_DECIMALS = 4
# Exchange symbols such as BRK.B or RDS-A; no key separators allowed.
TICKER_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9._-]{0,15}$")
