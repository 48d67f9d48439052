from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import click

from stockapi.app.constants import DEFAULT_CORRELATION_MINUTES, DEFAULT_PRICE_MINUTES

from .config import get_client_settings
from .http_client import APIClient
from .options import aggregation_option, build_params, minutes_option, ticker_argument


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _configure_logging(level: Optional[str]) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option("--base-url", envvar="API_BASE_URL", help="API base URL (env: API_BASE_URL)")
@click.option("--log-level", envvar="LOG_LEVEL", help="Log level (env: LOG_LEVEL)")
@click.pass_context
def cli(ctx: click.Context, base_url: Optional[str], log_level: Optional[str]) -> None:
    """Stock price aggregation API server and command line client."""

    _configure_logging(log_level)
    ctx.obj = {"settings": get_client_settings(base_url)}


def _client(ctx: click.Context) -> APIClient:
    client = ctx.obj.get("client")
    if client is None:
        client = APIClient(ctx.obj["settings"])
        ctx.obj["client"] = client
    return client


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", envvar="PORT", default=3000, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the aggregation API."""

    import uvicorn

    uvicorn.run("stockapi.app.main:create_app", factory=True, host=host, port=port)


@cli.command("mock-upstream")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=4000, show_default=True, type=int)
def mock_upstream(host: str, port: int) -> None:
    """Run the mock stock exchange the API fetches from."""

    import uvicorn

    uvicorn.run("stockapi.mock.server:create_mock_app", factory=True, host=host, port=port)


@cli.command()
@ticker_argument(1)
@minutes_option(DEFAULT_PRICE_MINUTES)
@aggregation_option
@click.pass_context
def price(ctx: click.Context, ticker: str, minutes: int, aggregation: str) -> None:
    """Aggregated price for TICKER over the last MINUTES."""

    params = build_params(minutes=minutes, aggregation=aggregation.lower())
    _echo_json(_client(ctx).get(f"/stocks/{ticker}", params=params))


@cli.command()
@ticker_argument(2)
@minutes_option(DEFAULT_CORRELATION_MINUTES)
@click.pass_context
def correlation(ctx: click.Context, tickers: tuple[str, str], minutes: int) -> None:
    """Price correlation between two TICKERS over the last MINUTES."""

    if tickers[0] == tickers[1]:
        raise click.BadParameter("Cannot calculate correlation between the same stock.")
    params = [("ticker", tickers[0]), ("ticker", tickers[1]), ("minutes", minutes)]
    _echo_json(_client(ctx).get("/stockcorrelation", params=params))


@cli.command()
@click.argument("pattern")
@click.pass_context
def invalidate(ctx: click.Context, pattern: str) -> None:
    """Drop cached results whose key contains PATTERN."""

    _echo_json(_client(ctx).delete("/cache", params={"pattern": pattern}))


if __name__ == "__main__":
    cli()
