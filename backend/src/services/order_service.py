"""Service layer for orders."""
from db.stores import EntityKind, Record, clean_patch
from services.exceptions import MalformedInputError
from services.repository import FallbackRepository, RepositoryResult

ORDER_STATUSES = (
    "new",
    "processing",
    "printed",
    "shipped",
    "completed",
    "cancelled",
)


async def create_order(
    repo: FallbackRepository,
    user_id: str | None,
    data: Record,
) -> RepositoryResult[Record]:
    """Place an order with status 'new'; store-managed fields in data are ignored."""
    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise MalformedInputError("An order needs at least one item")
    record = {**clean_patch(data), "user_id": user_id, "status": "new"}
    return await repo.create(EntityKind.ORDER, record)


async def get_order(repo: FallbackRepository, order_id: str) -> RepositoryResult[Record]:
    """Fetch one order. Raises NotFoundError if absent."""
    return await repo.get(EntityKind.ORDER, order_id)


async def list_orders(
    repo: FallbackRepository,
    user_id: str | None = None,
) -> RepositoryResult[list[Record]]:
    """List orders, newest first; optionally only one user's."""
    filters = {"user_id": user_id} if user_id is not None else None
    return await repo.list(EntityKind.ORDER, filters)


async def update_order_status(
    repo: FallbackRepository,
    order_id: str,
    status: str,
) -> RepositoryResult[Record]:
    """
    Move an order to a new status.

    Raises:
        MalformedInputError: If status is not one of ORDER_STATUSES.
        NotFoundError: If the order does not exist.
    """
    if status not in ORDER_STATUSES:
        raise MalformedInputError(f"Invalid status: {status!r}")
    return await repo.update(EntityKind.ORDER, order_id, {"status": status})


async def delete_order(repo: FallbackRepository, order_id: str) -> RepositoryResult[bool]:
    """Delete an order."""
    return await repo.delete(EntityKind.ORDER, order_id)
