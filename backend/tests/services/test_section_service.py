"""Tests for catalog section operations."""
import pytest

from core.ttl_cache import TTLCache
from db.stores import EntityKind
from db.volatile_store import VolatileStore
from services import section_service
from services.exceptions import MalformedInputError, NotFoundError
from services.repository import FallbackRepository
from tests.conftest import FlakyStore


async def test_create_and_list(repo: FallbackRepository, cache: TTLCache) -> None:
    """Sections are created with a trimmed name and listed."""
    created = await section_service.create_section(
        repo, cache, {"name": "  Mugs ", "description": "Ceramics"},
    )
    assert created.value["name"] == "Mugs"
    listed = await section_service.list_sections(repo)
    assert [s["id"] for s in listed.value] == [created.value["id"]]


async def test_blank_name_is_malformed(repo: FallbackRepository, cache: TTLCache) -> None:
    """A section needs a name on create and on rename."""
    with pytest.raises(MalformedInputError):
        await section_service.create_section(repo, cache, {"name": " "})
    section = (await section_service.create_section(repo, cache, {"name": "Mugs"})).value
    with pytest.raises(MalformedInputError):
        await section_service.update_section(repo, cache, section["id"], {"name": ""})


async def test_writes_invalidate_product_pages(repo: FallbackRepository, cache: TTLCache) -> None:
    """Every section write drops cached product pages."""
    cache.set("products:1:20:all", {})
    section = (await section_service.create_section(repo, cache, {"name": "Mugs"})).value
    assert not cache.has("products:1:20:all")

    cache.set("products:1:20:all", {})
    await section_service.update_section(repo, cache, section["id"], {"description": "x"})
    assert not cache.has("products:1:20:all")

    cache.set("products:1:20:all", {})
    await section_service.delete_section(repo, cache, section["id"])
    assert not cache.has("products:1:20:all")


async def test_sections_merge_across_tiers(
    repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
) -> None:
    """Sections from both tiers are listed once each; the primary copy wins."""
    primary.backing.create(EntityKind.SECTION, {"id": "s1", "name": "Primary"})
    volatile.create(EntityKind.SECTION, {"id": "s1", "name": "Stale"})
    volatile.create(EntityKind.SECTION, {"id": "s2", "name": "Outage"})
    listed = await section_service.list_sections(repo)
    assert {s["id"]: s["name"] for s in listed.value} == {"s1": "Primary", "s2": "Outage"}


async def test_missing_section(repo: FallbackRepository, cache: TTLCache) -> None:
    """Updating or deleting an unknown section is NotFound."""
    with pytest.raises(NotFoundError):
        await section_service.update_section(repo, cache, "nope", {"name": "X"})
    with pytest.raises(NotFoundError):
        await section_service.delete_section(repo, cache, "nope")
