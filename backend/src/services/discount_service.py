"""Service layer for discounts."""
from typing import Any

from db.stores import EntityKind, Record, now_ms
from services.repository import FallbackRepository, RepositoryResult

MAX_PERCENT = 90
DEFAULT_DURATION_MS = 7 * 24 * 3600 * 1000


def clamp_percent(value: Any) -> int:
    """Clamp a discount percentage to 0..90; unparseable values become 0."""
    try:
        percent = int(float(value))
    except (TypeError, ValueError):
        percent = 0
    return min(MAX_PERCENT, max(0, percent))


def is_active(discount: Record, at_ms: int) -> bool:
    """Whether a discount is switched on and its window contains at_ms."""
    return (
        bool(discount.get("active"))
        and discount.get("starts_at", 0) <= at_ms <= discount.get("ends_at", 0)
    )


async def create_discount(repo: FallbackRepository, data: Record) -> RepositoryResult[Record]:
    """Create a discount, defaulting its window to the next seven days."""
    now = now_ms()
    record = {
        "name": str(data.get("name") or "").strip(),
        "percent": clamp_percent(data.get("percent")),
        "starts_at": int(data.get("starts_at") or now),
        "ends_at": int(data.get("ends_at") or now + DEFAULT_DURATION_MS),
        "active": bool(data.get("active", False)),
        "product_ids": list(data.get("product_ids") or []),
        "section_ids": list(data.get("section_ids") or []),
    }
    return await repo.create(EntityKind.DISCOUNT, record)


async def list_discounts(repo: FallbackRepository) -> RepositoryResult[list[Record]]:
    """List discounts from both tiers (primary record wins per id)."""
    return await repo.list(EntityKind.DISCOUNT)


async def active_discounts(
    repo: FallbackRepository,
    at_ms: int | None = None,
) -> RepositoryResult[list[Record]]:
    """List discounts active at a timestamp (default: now)."""
    at_ms = now_ms() if at_ms is None else at_ms
    result = await repo.list(EntityKind.DISCOUNT)
    return RepositoryResult([d for d in result.value if is_active(d, at_ms)], result.primary_used)


async def update_discount(
    repo: FallbackRepository,
    discount_id: str,
    patch: Record,
) -> RepositoryResult[Record]:
    """Patch a discount; percent is re-clamped."""
    patch = dict(patch)
    if patch.get("percent") is not None:
        patch["percent"] = clamp_percent(patch["percent"])
    return await repo.update(EntityKind.DISCOUNT, discount_id, patch)


async def delete_discount(repo: FallbackRepository, discount_id: str) -> RepositoryResult[bool]:
    """Delete a discount."""
    return await repo.delete(EntityKind.DISCOUNT, discount_id)
