"""Service layer for shopping carts (one cart per user)."""
import asyncio
import logging
import weakref
from typing import Any

from db.stores import EntityKind, Record
from services.exceptions import MalformedInputError
from services.merge import merge_cart_items
from services.repository import FallbackRepository, RepositoryResult

logger = logging.getLogger(__name__)

# Entries disappear once no merge holds or awaits the lock
_cart_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()


def cart_lock(user_id: str) -> asyncio.Lock:
    """
    Lock serializing cart merges for one user within this process.

    Merges from other worker processes are not serialized.
    """
    lock = _cart_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _cart_locks[user_id] = lock
    return lock


async def get_cart(repo: FallbackRepository, user_id: str) -> RepositoryResult[Record | None]:
    """Return the user's cart, or None if they have none."""
    result = await repo.list(EntityKind.CART, {"user_id": user_id})
    cart = result.value[0] if result.value else None
    return RepositoryResult(cart, result.primary_used)


async def merge_cart(
    repo: FallbackRepository,
    user_id: str,
    incoming: list[Any],
    cart_id: str | None = None,
) -> RepositoryResult[Record]:
    """
    Fold incoming line items into the user's cart and store the result.

    The merged item list is computed in full before a single write replaces the
    stored items, so readers see either the old cart or the new one.
    Incoming items are deltas: submitting the same items twice adds them twice.
    Concurrent merges for the same user are serialized, so no delta is lost.
    """
    if not isinstance(incoming, list):
        raise MalformedInputError("Cart items must be a list")

    async with cart_lock(user_id):
        existing = (await get_cart(repo, user_id)).value
        existing_items = existing.get("items") if existing else None
        items = merge_cart_items(
            existing_items if isinstance(existing_items, list) else [],
            incoming,
        )

        if existing is not None:
            result = await repo.update(EntityKind.CART, existing["id"], {"items": items})
        else:
            record: Record = {"user_id": user_id, "items": items}
            if cart_id:
                record["id"] = cart_id
            result = await repo.create(EntityKind.CART, record)

    logger.debug(
        "cart_merged user_id=%s items=%d primary_used=%s",
        user_id, len(items), result.primary_used,
    )
    return result


async def merge_guest_cart(
    repo: FallbackRepository,
    user_id: str,
    guest_items: list[Any] | None,
) -> Record | None:
    """
    Merge a guest cart into the user's cart at login.

    Best effort: a failure is logged and skipped so login still succeeds.
    """
    if not guest_items:
        return None
    try:
        return (await merge_cart(repo, user_id, guest_items)).value
    except Exception:
        logger.warning("guest_cart_merge_failed user_id=%s", user_id, exc_info=True)
        return None
