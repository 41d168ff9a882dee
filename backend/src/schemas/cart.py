"""Pydantic schemas for cart endpoints."""
from typing import Any

from pydantic import BaseModel


class CartMergeRequest(BaseModel):
    """
    Line items to fold into the cart.

    Items are free-form objects; they are matched on `id`, `product_id` or
    `productId` and their `quantity`/`qty` values are added.
    """

    items: list[Any]


class CartResponse(BaseModel):
    """The signed-in user's cart."""

    id: str | None = None
    items: list[dict[str, Any]] = []
    degraded: bool = False
