"""Cart endpoints for the signed-in user."""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_user, get_repository
from core.token_codec import SessionClaims
from schemas.cart import CartMergeRequest, CartResponse
from services.cart_service import get_cart, merge_cart
from services.repository import FallbackRepository

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartResponse)
async def read_cart(
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
) -> CartResponse:
    """Return the user's cart; an empty cart if none has been stored."""
    result = await get_cart(repo, current_user.id)
    cart = result.value or {}
    return CartResponse(
        id=cart.get("id"),
        items=cart.get("items") or [],
        degraded=not result.primary_used,
    )


@router.post("/", response_model=CartResponse)
async def add_to_cart(
    data: CartMergeRequest,
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
) -> CartResponse:
    """
    Merge items into the user's cart.

    Items matching an existing line (same id/product_id/productId) have their
    quantities added.
    """
    result = await merge_cart(repo, current_user.id, data.items)
    return CartResponse(
        id=result.value["id"],
        items=result.value["items"],
        degraded=not result.primary_used,
    )
