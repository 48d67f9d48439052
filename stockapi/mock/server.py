from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, status

from .data import LISTINGS, Listing, generate_price_history, quote


def create_mock_app(rng: Optional[random.Random] = None) -> FastAPI:
    rng = rng or random.Random()
    app = FastAPI(title="Mock Stock Exchange API", version="0.1.0")

    def _listing(ticker: str) -> Listing:
        listing = LISTINGS.get(ticker.upper())
        if listing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Stock ticker {ticker.upper()} not found")
        return listing

    @app.get("/stocks")
    async def list_stocks() -> dict:
        return {
            "stocks": [
                {"ticker": ticker, "name": listing.name, "sector": listing.sector}
                for ticker, listing in LISTINGS.items()
            ]
        }

    @app.get("/stocks/{ticker}/price")
    async def current_price(ticker: str) -> dict:
        listing = _listing(ticker)
        return {
            "ticker": ticker.upper(),
            "price": quote(listing.base_price, rng),
            "lastUpdatedAt": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/stocks/{ticker}/history")
    async def price_history(ticker: str) -> dict:
        listing = _listing(ticker)
        return {
            "ticker": ticker.upper(),
            "priceHistory": generate_price_history(ticker.upper(), listing.base_price, rng=rng),
        }

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app
