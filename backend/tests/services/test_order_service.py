"""Tests for order operations."""
import pytest

from services import order_service
from services.exceptions import MalformedInputError, NotFoundError
from services.repository import FallbackRepository


async def test_create_order_starts_new(repo: FallbackRepository) -> None:
    """New orders belong to the caller and start with status 'new'."""
    result = await order_service.create_order(
        repo, "u1", {"items": [{"id": "p1"}], "status": "shipped"},
    )
    assert result.value["status"] == "new"
    assert result.value["user_id"] == "u1"


async def test_create_order_requires_items(repo: FallbackRepository) -> None:
    """Orders without items are malformed."""
    with pytest.raises(MalformedInputError):
        await order_service.create_order(repo, "u1", {"items": []})


async def test_list_orders_by_user(repo: FallbackRepository) -> None:
    """Users see only their own orders; admins list everything."""
    await order_service.create_order(repo, "u1", {"items": [1]})
    await order_service.create_order(repo, "u2", {"items": [1]})
    assert len((await order_service.list_orders(repo, "u1")).value) == 1
    assert len((await order_service.list_orders(repo)).value) == 2


async def test_update_status(repo: FallbackRepository) -> None:
    """Known statuses are accepted; unknown ones are malformed."""
    order = (await order_service.create_order(repo, "u1", {"items": [1]})).value
    updated = await order_service.update_order_status(repo, order["id"], "shipped")
    assert updated.value["status"] == "shipped"
    with pytest.raises(MalformedInputError):
        await order_service.update_order_status(repo, order["id"], "lost")


async def test_missing_order(repo: FallbackRepository) -> None:
    """Unknown orders are NotFound."""
    with pytest.raises(NotFoundError):
        await order_service.get_order(repo, "nope")
    with pytest.raises(NotFoundError):
        await order_service.delete_order(repo, "nope")


async def test_create_order_ignores_store_managed_fields(repo: FallbackRepository) -> None:
    """Client-supplied id and timestamps never reach the store."""
    first = (await order_service.create_order(repo, "u1", {"items": [1]})).value
    second = await order_service.create_order(
        repo, "u2", {"id": first["id"], "created_at": 1, "updated_at": 2, "items": [2]},
    )
    assert second.value["id"] != first["id"]
    assert second.value["created_at"] != 1
    assert (await order_service.get_order(repo, first["id"])).value["user_id"] == "u1"
