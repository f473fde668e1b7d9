"""Prices API: Jupiter Price API passthrough."""

from fastapi import APIRouter, Depends, HTTPException

from trigger_router.api.deps import get_price_service
from trigger_router.schemas.suggestion import PriceRead
from trigger_router.services.price_service import PriceService

router = APIRouter(prefix="/api/prices", tags=["prices"])


@router.get("/{mint}", response_model=PriceRead)
async def get_price(
    mint: str,
    vs_token: str | None = None,
    extra_info: bool = False,
    price_service: PriceService = Depends(get_price_service),
):
    quote = await price_service.get_price(mint, vs_token=vs_token, extra_info=extra_info)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"No price available for {mint}")
    return PriceRead.model_validate(quote)
