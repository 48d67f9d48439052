from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import CorrelationQueryParams, get_price_service
from ..schemas import CorrelationResponse
from ..services.price_service import PriceService

router = APIRouter(prefix="/stockcorrelation", tags=["correlations"])


@router.get("", response_model=CorrelationResponse)
def stock_correlation(
    params: CorrelationQueryParams = Depends(),
    service: PriceService = Depends(get_price_service),
) -> CorrelationResponse:
    return service.correlation(params.tickers, params.minutes)
