"""Service layer for catalog sections."""
import logging

from core.ttl_cache import TTLCache
from db.stores import EntityKind, Record
from services.catalog_service import invalidate_products
from services.exceptions import MalformedInputError
from services.repository import FallbackRepository, RepositoryResult

logger = logging.getLogger(__name__)


def _section_name(value: object) -> str:
    name = str(value or "").strip()
    if not name:
        raise MalformedInputError("Section name is required")
    return name


async def list_sections(repo: FallbackRepository) -> RepositoryResult[list[Record]]:
    """List sections from both tiers (primary record wins per id)."""
    return await repo.list(EntityKind.SECTION)


async def create_section(
    repo: FallbackRepository,
    cache: TTLCache,
    data: Record,
) -> RepositoryResult[Record]:
    """
    Create a section and drop cached product pages.

    Raises:
        MalformedInputError: If the name is blank.
    """
    record = {
        "name": _section_name(data.get("name")),
        "description": str(data.get("description") or "").strip(),
    }
    result = await repo.create(EntityKind.SECTION, record)
    invalidate_products(cache)
    logger.info(
        "section_created",
        extra={"section_id": result.value["id"], "primary_used": result.primary_used},
    )
    return result


async def update_section(
    repo: FallbackRepository,
    cache: TTLCache,
    section_id: str,
    patch: Record,
) -> RepositoryResult[Record]:
    """Rename or re-describe a section; product labels follow on the next listing."""
    patch = dict(patch)
    if "name" in patch:
        patch["name"] = _section_name(patch["name"])
    result = await repo.update(EntityKind.SECTION, section_id, patch)
    invalidate_products(cache)
    return result


async def delete_section(
    repo: FallbackRepository,
    cache: TTLCache,
    section_id: str,
) -> RepositoryResult[bool]:
    """Delete a section. Its products keep their section_id and lose the label."""
    result = await repo.delete(EntityKind.SECTION, section_id)
    invalidate_products(cache)
    return result
