"""
Admin endpoints.

Every endpoint declares a capability dependency, so an unauthorized request is
refused before any repository or cache access happens.
"""
import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_cache, get_repository, require_capability
from core.roles import Capability
from core.token_codec import SessionClaims
from core.ttl_cache import TTLCache
from db.stores import EntityKind
from schemas.admin import (
    CacheClearResponse,
    CacheStatsResponse,
    DeleteResponse,
    FallbackReportResponse,
    PendingRecords,
)
from schemas.discount import (
    DiscountCreate,
    DiscountListResponse,
    DiscountResponse,
    DiscountUpdate,
)
from schemas.order import OrderListResponse, OrderResponse, OrderStatusUpdate
from schemas.product import ProductCreate, ProductResponse, ProductUpdate
from schemas.review import ReviewModeration, ReviewResponse
from schemas.section import (
    SectionCreate,
    SectionListResponse,
    SectionResponse,
    SectionUpdate,
)
from schemas.user import RoleUpdate, UserListResponse, UserResponse
from services import (
    catalog_service,
    discount_service,
    order_service,
    review_service,
    section_service,
    user_service,
)
from services.exceptions import MalformedInputError
from services.repository import FallbackRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

manage_users = require_capability(Capability.MANAGE_USERS)
manage_catalog = require_capability(Capability.MANAGE_CATALOG)
manage_discounts = require_capability(Capability.MANAGE_DISCOUNTS)
manage_orders = require_capability(Capability.MANAGE_ORDERS)
moderate_reviews = require_capability(Capability.MODERATE_REVIEWS)
view_diagnostics = require_capability(Capability.VIEW_DIAGNOSTICS)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get("/users", response_model=UserListResponse)
async def list_users(
    _admin: SessionClaims = Depends(manage_users),
    repo: FallbackRepository = Depends(get_repository),
) -> UserListResponse:
    """List users from both storage tiers."""
    result = await user_service.list_users(repo)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.value],
        degraded=not result.primary_used,
    )


@router.patch("/users/{user_id}", response_model=UserResponse)
async def change_user_role(
    user_id: str,
    data: RoleUpdate,
    admin: SessionClaims = Depends(manage_users),
    repo: FallbackRepository = Depends(get_repository),
) -> UserResponse:
    """
    Change a user's role.

    The user's existing session keeps its old role until it is reissued.
    """
    if user_id == admin.id and data.role != admin.role:
        raise MalformedInputError("Admins cannot change their own role")
    result = await user_service.update_role(repo, user_id, data.role)
    return UserResponse.model_validate(result.value)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> ProductResponse:
    """Create a product and drop cached product pages."""
    result = await catalog_service.create_product(repo, cache, data.model_dump())
    return ProductResponse(product=result.value, degraded=not result.primary_used)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> ProductResponse:
    """Patch a product. Returns 404 if it does not exist."""
    result = await catalog_service.update_product(
        repo, cache, product_id, data.model_dump(exclude_unset=True),
    )
    return ProductResponse(product=result.value, degraded=not result.primary_used)


@router.delete("/products/{product_id}", response_model=DeleteResponse)
async def delete_product(
    product_id: str,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> DeleteResponse:
    """Delete a product. Returns 404 if it does not exist."""
    result = await catalog_service.delete_product(repo, cache, product_id)
    return DeleteResponse(deleted=result.value, degraded=not result.primary_used)


@router.get("/sections", response_model=SectionListResponse)
async def list_sections(
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
) -> SectionListResponse:
    """List catalog sections from both storage tiers."""
    result = await section_service.list_sections(repo)
    return SectionListResponse(sections=result.value, degraded=not result.primary_used)


@router.post("/sections", response_model=SectionResponse, status_code=status.HTTP_201_CREATED)
async def create_section(
    data: SectionCreate,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> SectionResponse:
    """Create a section and drop cached product pages."""
    result = await section_service.create_section(repo, cache, data.model_dump())
    return SectionResponse(section=result.value, degraded=not result.primary_used)


@router.patch("/sections/{section_id}", response_model=SectionResponse)
async def update_section(
    section_id: str,
    data: SectionUpdate,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> SectionResponse:
    """Patch a section. Returns 404 if it does not exist."""
    result = await section_service.update_section(
        repo, cache, section_id, data.model_dump(exclude_unset=True),
    )
    return SectionResponse(section=result.value, degraded=not result.primary_used)


@router.delete("/sections/{section_id}", response_model=DeleteResponse)
async def delete_section(
    section_id: str,
    _admin: SessionClaims = Depends(manage_catalog),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
) -> DeleteResponse:
    """Delete a section. Returns 404 if it does not exist."""
    result = await section_service.delete_section(repo, cache, section_id)
    return DeleteResponse(deleted=result.value, degraded=not result.primary_used)


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------

@router.get("/discounts", response_model=DiscountListResponse)
async def list_discounts(
    _admin: SessionClaims = Depends(manage_discounts),
    repo: FallbackRepository = Depends(get_repository),
) -> DiscountListResponse:
    """List every discount, active or not."""
    result = await discount_service.list_discounts(repo)
    return DiscountListResponse(discounts=result.value, degraded=not result.primary_used)


@router.post("/discounts", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
async def create_discount(
    data: DiscountCreate,
    _admin: SessionClaims = Depends(manage_discounts),
    repo: FallbackRepository = Depends(get_repository),
) -> DiscountResponse:
    """Create a discount."""
    result = await discount_service.create_discount(repo, data.model_dump())
    return DiscountResponse(discount=result.value, degraded=not result.primary_used)


@router.patch("/discounts/{discount_id}", response_model=DiscountResponse)
async def update_discount(
    discount_id: str,
    data: DiscountUpdate,
    _admin: SessionClaims = Depends(manage_discounts),
    repo: FallbackRepository = Depends(get_repository),
) -> DiscountResponse:
    """Patch a discount."""
    result = await discount_service.update_discount(
        repo, discount_id, data.model_dump(exclude_unset=True),
    )
    return DiscountResponse(discount=result.value, degraded=not result.primary_used)


@router.delete("/discounts/{discount_id}", response_model=DeleteResponse)
async def delete_discount(
    discount_id: str,
    _admin: SessionClaims = Depends(manage_discounts),
    repo: FallbackRepository = Depends(get_repository),
) -> DeleteResponse:
    """Delete a discount."""
    result = await discount_service.delete_discount(repo, discount_id)
    return DeleteResponse(deleted=result.value, degraded=not result.primary_used)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    _admin: SessionClaims = Depends(manage_orders),
    repo: FallbackRepository = Depends(get_repository),
) -> OrderListResponse:
    """List every order, newest first."""
    result = await order_service.list_orders(repo)
    return OrderListResponse(orders=result.value, degraded=not result.primary_used)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    _admin: SessionClaims = Depends(manage_orders),
    repo: FallbackRepository = Depends(get_repository),
) -> OrderResponse:
    """Move an order to a new status."""
    result = await order_service.update_order_status(repo, order_id, data.status)
    return OrderResponse(order=result.value, degraded=not result.primary_used)


@router.delete("/orders/{order_id}", response_model=DeleteResponse)
async def delete_order(
    order_id: str,
    _admin: SessionClaims = Depends(manage_orders),
    repo: FallbackRepository = Depends(get_repository),
) -> DeleteResponse:
    """Delete an order."""
    result = await order_service.delete_order(repo, order_id)
    return DeleteResponse(deleted=result.value, degraded=not result.primary_used)


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

@router.patch("/reviews/{review_id}", response_model=ReviewResponse)
async def moderate_review(
    review_id: str,
    data: ReviewModeration,
    _admin: SessionClaims = Depends(moderate_reviews),
    repo: FallbackRepository = Depends(get_repository),
) -> ReviewResponse:
    """Change a review's status or correct its content."""
    result = await review_service.moderate_review(
        repo, review_id, data.model_dump(exclude_none=True),
    )
    return ReviewResponse(review=result.value, degraded=not result.primary_used)


@router.delete("/reviews/{review_id}", response_model=DeleteResponse)
async def delete_review(
    review_id: str,
    _admin: SessionClaims = Depends(moderate_reviews),
    repo: FallbackRepository = Depends(get_repository),
) -> DeleteResponse:
    """Delete a review."""
    result = await review_service.delete_review(repo, review_id)
    return DeleteResponse(deleted=result.value, degraded=not result.primary_used)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

@router.get("/cache", response_model=CacheStatsResponse)
async def cache_stats(
    _admin: SessionClaims = Depends(view_diagnostics),
    cache: TTLCache = Depends(get_cache),
) -> CacheStatsResponse:
    """Entry count and keys of the shared cache."""
    stats = cache.stats()
    return CacheStatsResponse(
        entry_count=stats.entry_count,
        keys=stats.keys,
        sweeping=cache.is_sweeping,
    )


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(
    admin: SessionClaims = Depends(view_diagnostics),
    cache: TTLCache = Depends(get_cache),
) -> CacheClearResponse:
    """Remove every cache entry."""
    cleared = cache.stats().entry_count
    cache.clear()
    logger.info("admin_cache_cleared", extra={"user_id": admin.id, "cleared": cleared})
    return CacheClearResponse(cleared=cleared)


@router.get("/fallback", response_model=FallbackReportResponse)
async def fallback_report(
    _admin: SessionClaims = Depends(view_diagnostics),
    repo: FallbackRepository = Depends(get_repository),
) -> FallbackReportResponse:
    """
    List records written to the volatile store that the primary store lacks.

    These are lost on restart unless re-entered; nothing is replayed automatically.
    """
    kinds = []
    for kind in EntityKind:
        report = await repo.unreconciled(kind)
        kinds.append(PendingRecords(
            kind=report.kind.value,
            primary_reachable=report.primary_reachable,
            pending=report.pending,
        ))
    return FallbackReportResponse(
        kinds=kinds,
        total_pending=sum(len(k.pending) for k in kinds),
    )
