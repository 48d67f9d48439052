import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .constants import TIER_SPECS, TierSpec


STOCK_API_URL_ENV = "STOCK_API_URL"
DEFAULT_STOCK_API_URL = "http://localhost:4000"


class ConfigurationError(RuntimeError):
    """Raised when an environment variable holds an unusable value."""


@dataclass
class UpstreamSettings:
    base_url: str = DEFAULT_STOCK_API_URL
    timeout_seconds: float = 5.0
    retry_attempts: int = 3


@dataclass
class Settings:
    upstream: UpstreamSettings = field(default_factory=UpstreamSettings)
    tiers: Dict[str, TierSpec] = field(default_factory=lambda: dict(TIER_SPECS))
    stats_interval_seconds: float = 60.0
    cors_origins: str = "*"
    rate_limit_max: int = 100
    rate_limit_window_seconds: float = 900.0


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def get_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from environment variables.

    Args:
        env: Optional mapping used instead of ``os.environ``.

    Returns:
        Settings where every unset variable falls back to its default.

    Raises:
        ConfigurationError: when a variable is set to a non-numeric or
            negative value.
    """

    env = os.environ if env is None else env

    upstream = UpstreamSettings(
        base_url=(env.get(STOCK_API_URL_ENV) or DEFAULT_STOCK_API_URL).rstrip("/"),
        timeout_seconds=_number(env, "API_TIMEOUT", 5000) / 1000.0,
        retry_attempts=max(1, int(_number(env, "API_RETRY_ATTEMPTS", 3))),
    )

    tiers: Dict[str, TierSpec] = {}
    for name, spec in TIER_SPECS.items():
        prefix = name.upper()
        tiers[name] = TierSpec(
            max_minutes=spec.max_minutes,
            ttl_seconds=_number(env, f"{prefix}_CACHE_TTL", spec.ttl_seconds),
            check_period_seconds=_number(env, f"{prefix}_CACHE_CHECK", spec.check_period_seconds),
        )

    return Settings(
        upstream=upstream,
        tiers=tiers,
        stats_interval_seconds=_number(env, "CACHE_STATS_INTERVAL_SECONDS", 60.0),
        cors_origins=env.get("API_CORS_ORIGINS", "*"),
        rate_limit_max=int(_number(env, "RATE_LIMIT_MAX", 100)),
        rate_limit_window_seconds=_number(env, "RATE_LIMIT_WINDOW", 900000) / 1000.0,
    )
