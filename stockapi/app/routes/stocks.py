from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import StockQueryParams, get_price_service
from ..schemas import StockPriceResponse
from ..services.price_service import PriceService

router = APIRouter(prefix="/stocks", tags=["stocks"])


@router.get("/{ticker}", response_model=StockPriceResponse)
def stock_price(
    params: StockQueryParams = Depends(),
    service: PriceService = Depends(get_price_service),
) -> StockPriceResponse:
    return service.stock_price(params.ticker, params.minutes, params.aggregation)
