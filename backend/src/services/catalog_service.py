"""Service layer for the product catalog."""
import logging
import math
from typing import Any

from core.ttl_cache import TTLCache
from db.stores import EntityKind, Record, clean_patch
from services.exceptions import MalformedInputError, UnavailableError
from services.repository import FallbackRepository, RepositoryResult

logger = logging.getLogger(__name__)

PRODUCTS_CACHE_PREFIX = "products:"
MAX_PAGE_SIZE = 100
ALL_SECTIONS = "all"


def products_cache_key(page: int, limit: int, section: str) -> str:
    """Cache key for one page of the product listing."""
    return f"{PRODUCTS_CACHE_PREFIX}{page}:{limit}:{section}"


def resolve_section(product: Record, sections: list[Record]) -> Record:
    """
    Attach `section_id` and `section_name` to a product.

    The product's `section_id` (or legacy `section`) is matched against section ids,
    then names. An unknown reference is kept as both id and name.
    """
    ref = product.get("section_id") or product.get("section")
    section = None
    if ref is not None:
        section = (
            next((s for s in sections if s.get("id") == ref), None)
            or next((s for s in sections if s.get("name") == ref), None)
        )
    if section is not None:
        return {**product, "section_id": section["id"], "section_name": section.get("name")}
    return {**product, "section_id": ref, "section_name": ref}


def _in_section(product: Record, section: str) -> bool:
    return section in (
        product.get("section_id"),
        product.get("section_name"),
        product.get("section"),
    )


async def _sections_for_listing(repo: FallbackRepository) -> RepositoryResult[list[Record]]:
    """Sections used to label products; an unavailable section list labels nothing."""
    try:
        return await repo.list(EntityKind.SECTION)
    except UnavailableError:
        logger.warning("product_sections_unavailable")
        return RepositoryResult([], primary_used=False)


async def list_products_page(
    repo: FallbackRepository,
    cache: TTLCache,
    page: int = 1,
    limit: int = 20,
    section: str = ALL_SECTIONS,
    ttl: float | None = None,
) -> dict[str, Any]:
    """
    Return one page of products, memoized in the TTL cache.

    Only pages built from a primary store answer are cached, so a degraded-mode
    listing is never pinned for the cache lifetime.

    Raises:
        MalformedInputError: If page < 1 or limit is outside 1..100.
    """
    if page < 1:
        raise MalformedInputError("Page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise MalformedInputError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    key = products_cache_key(page, limit, section)
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = await repo.list(EntityKind.PRODUCT)
    sections = await _sections_for_listing(repo)
    products = [resolve_section(p, sections.value) for p in result.value]
    if section != ALL_SECTIONS:
        products = [p for p in products if _in_section(p, section)]

    total = len(products)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    response = {
        "products": products[start:start + limit],
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_products": total,
            "limit": limit,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
        "sections": sections.value,
    }
    if result.primary_used and sections.primary_used:
        cache.set(key, response, ttl)
    else:
        logger.info("products_page_not_cached reason=degraded key=%s", key)
    return response


def invalidate_products(cache: TTLCache) -> int:
    """Drop every cached product page."""
    return cache.delete_prefix(PRODUCTS_CACHE_PREFIX)


async def get_product(repo: FallbackRepository, product_id: str) -> RepositoryResult[Record]:
    """Fetch one product. Raises NotFoundError if absent."""
    return await repo.get(EntityKind.PRODUCT, product_id)


async def create_product(
    repo: FallbackRepository,
    cache: TTLCache,
    data: Record,
) -> RepositoryResult[Record]:
    """Create a product with a fresh id and invalidate cached listings."""
    result = await repo.create(EntityKind.PRODUCT, clean_patch(data))
    invalidate_products(cache)
    return result


async def update_product(
    repo: FallbackRepository,
    cache: TTLCache,
    product_id: str,
    patch: Record,
) -> RepositoryResult[Record]:
    """Patch a product and invalidate cached listings."""
    result = await repo.update(EntityKind.PRODUCT, product_id, patch)
    invalidate_products(cache)
    return result


async def delete_product(
    repo: FallbackRepository,
    cache: TTLCache,
    product_id: str,
) -> RepositoryResult[bool]:
    """Delete a product and invalidate cached listings."""
    result = await repo.delete(EntityKind.PRODUCT, product_id)
    invalidate_products(cache)
    return result
