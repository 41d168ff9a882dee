"""Tests for discount operations."""
import pytest

from db.stores import now_ms
from services import discount_service
from services.repository import FallbackRepository


@pytest.mark.parametrize(
    ("value", "expected"),
    [(10, 10), (95, 90), (-5, 0), ("25", 25), ("abc", 0), (None, 0), (12.7, 12)],
)
def test_clamp_percent(value: object, expected: int) -> None:
    """Percentages are clamped to 0..90 and garbage becomes 0."""
    assert discount_service.clamp_percent(value) == expected


def test_is_active_window() -> None:
    """Active discounts apply inside their window only."""
    discount = {"active": True, "starts_at": 100, "ends_at": 200}
    assert discount_service.is_active(discount, 100)
    assert discount_service.is_active(discount, 200)
    assert not discount_service.is_active(discount, 201)
    assert not discount_service.is_active({**discount, "active": False}, 150)


async def test_create_defaults_to_seven_day_window(repo: FallbackRepository) -> None:
    """Discounts without dates run for seven days from now."""
    before = now_ms()
    result = await discount_service.create_discount(repo, {"name": "Spring", "percent": 150})
    discount = result.value
    assert discount["percent"] == 90
    assert discount["active"] is False
    assert discount["starts_at"] >= before
    assert discount["ends_at"] - discount["starts_at"] == discount_service.DEFAULT_DURATION_MS


async def test_active_discounts_filters(repo: FallbackRepository) -> None:
    """Only switched-on discounts inside their window are listed as active."""
    await discount_service.create_discount(repo, {"name": "on", "active": True})
    await discount_service.create_discount(repo, {"name": "off", "active": False})
    await discount_service.create_discount(
        repo, {"name": "past", "active": True, "starts_at": 1, "ends_at": 2},
    )
    active = (await discount_service.active_discounts(repo)).value
    assert [d["name"] for d in active] == ["on"]


async def test_update_reclamps_percent(repo: FallbackRepository) -> None:
    """Patched percentages are clamped too."""
    created = (await discount_service.create_discount(repo, {"name": "x", "percent": 5})).value
    updated = await discount_service.update_discount(repo, created["id"], {"percent": 300})
    assert updated.value["percent"] == 90
