from __future__ import annotations

from typing import Any, Callable, Optional

import click

from stockapi.app.constants import MAX_WINDOW_MINUTES, MIN_WINDOW_MINUTES
from stockapi.app.schemas import AggregationKind


def _ticker(_: click.Context, __: click.Parameter, value: Any) -> Any:
    values = value if isinstance(value, tuple) else (value,)
    cleaned = tuple((item or "").strip().upper() for item in values)
    if not all(cleaned):
        raise click.BadParameter("Ticker symbols must not be blank.")
    return cleaned if isinstance(value, tuple) else cleaned[0]


def minutes_option(default: int) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    return click.option(
        "--minutes",
        type=click.IntRange(MIN_WINDOW_MINUTES, MAX_WINDOW_MINUTES),
        default=default,
        show_default=True,
        help="Minutes of history to analyse.",
    )


def aggregation_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--aggregation",
        type=click.Choice([kind.value for kind in AggregationKind], case_sensitive=False),
        default=AggregationKind.AVERAGE.value,
        show_default=True,
    )(func)


def ticker_argument(nargs: int) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    return click.argument("tickers" if nargs > 1 else "ticker", nargs=nargs, callback=_ticker)


def build_params(**kwargs: Optional[Any]) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}
