from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AggregationKind(str, Enum):
    AVERAGE = "average"
    MEDIAN = "median"
    MIN = "min"
    MAX = "max"


class PricePoint(BaseModel):
    """A single observed (or synthesised) price.

    ``interpolated`` is only ever true for points produced by the aligner.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(alias="lastUpdatedAt")
    price: float
    interpolated: bool = False

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class StockPriceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    average_stock_price: Optional[float] = Field(default=None, alias="averageStockPrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")


class StockSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    average_price: Optional[float] = Field(default=None, alias="averagePrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")


class CorrelationResponse(BaseModel):
    correlation: float
    stocks: Dict[str, StockSummary]


class CacheInvalidationResponse(BaseModel):
    pattern: str
    invalidated: int
