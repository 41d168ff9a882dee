"""Public catalog endpoints."""
from fastapi import APIRouter, Depends, Query

from api.dependencies import get_cache, get_container, get_repository
from core.container import AppContainer
from core.ttl_cache import TTLCache
from schemas.product import ProductPage, ProductResponse
from services.catalog_service import ALL_SECTIONS, get_product, list_products_page
from services.repository import FallbackRepository

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=ProductPage)
async def list_products(
    page: int = Query(default=1),
    limit: int = Query(default=20),
    section: str = Query(default=ALL_SECTIONS),
    repo: FallbackRepository = Depends(get_repository),
    cache: TTLCache = Depends(get_cache),
    container: AppContainer = Depends(get_container),
) -> dict:
    """
    Return one page of products, optionally restricted to a section.

    Pages are served from the shared cache when present.
    """
    return await list_products_page(
        repo, cache, page, limit, section,
        ttl=container.settings.products_cache_ttl_seconds,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def read_product(
    product_id: str,
    repo: FallbackRepository = Depends(get_repository),
) -> ProductResponse:
    """Return one product. Returns 404 if it does not exist."""
    result = await get_product(repo, product_id)
    return ProductResponse(product=result.value, degraded=not result.primary_used)
