"""Order endpoints for the signed-in user."""
from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user, get_repository
from core.roles import Capability, has_capability
from core.token_codec import SessionClaims
from schemas.order import OrderCreate, OrderListResponse, OrderResponse
from services import order_service
from services.exceptions import NotFoundError
from services.repository import FallbackRepository

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    data: OrderCreate,
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
) -> OrderResponse:
    """Place an order. New orders start with status 'new'."""
    result = await order_service.create_order(
        repo, current_user.id, data.model_dump(exclude_none=True),
    )
    return OrderResponse(order=result.value, degraded=not result.primary_used)


@router.get("/", response_model=OrderListResponse)
async def list_my_orders(
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
) -> OrderListResponse:
    """List the user's own orders, newest first."""
    result = await order_service.list_orders(repo, current_user.id)
    return OrderListResponse(orders=result.value, degraded=not result.primary_used)


@router.get("/{order_id}", response_model=OrderResponse)
async def read_order(
    order_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
) -> OrderResponse:
    """
    Return one order.

    Orders belonging to someone else are reported as not found unless the session
    may manage orders.
    """
    result = await order_service.get_order(repo, order_id)
    order = result.value
    if order.get("user_id") != current_user.id and not has_capability(
        current_user.role, Capability.MANAGE_ORDERS,
    ):
        raise NotFoundError("orders", order_id)
    return OrderResponse(order=order, degraded=not result.primary_used)
