from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_price_service
from ..schemas import CacheInvalidationResponse
from ..services.price_service import PriceService

router = APIRouter(prefix="/cache", tags=["cache"])


@router.delete("", response_model=CacheInvalidationResponse)
def invalidate_cache(
    pattern: str = Query(..., min_length=1, description="Substring of the cache keys to drop"),
    service: PriceService = Depends(get_price_service),
) -> CacheInvalidationResponse:
    return service.invalidate(pattern)
