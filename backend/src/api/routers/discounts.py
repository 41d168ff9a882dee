"""Public discount endpoints."""
from fastapi import APIRouter, Depends

from api.dependencies import get_repository
from schemas.discount import DiscountListResponse
from services.discount_service import active_discounts
from services.repository import FallbackRepository

router = APIRouter(prefix="/discounts", tags=["discounts"])


@router.get("/", response_model=DiscountListResponse)
async def list_active_discounts(
    repo: FallbackRepository = Depends(get_repository),
) -> DiscountListResponse:
    """Return discounts that are switched on and currently within their window."""
    result = await active_discounts(repo)
    return DiscountListResponse(discounts=result.value, degraded=not result.primary_used)
