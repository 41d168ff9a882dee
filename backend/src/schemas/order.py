"""Pydantic schemas for order endpoints."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderCreate(BaseModel):
    """Schema for placing an order; extra attributes (address, notes) are kept."""

    model_config = ConfigDict(extra="allow")

    items: list[dict[str, Any]] = Field(..., min_length=1)
    total: float | None = Field(default=None, ge=0)


class OrderStatusUpdate(BaseModel):
    """Schema for moving an order to a new status."""

    status: str


class OrderResponse(BaseModel):
    """A single order record."""

    order: dict[str, Any]
    degraded: bool = False


class OrderListResponse(BaseModel):
    """Schema for order listings."""

    orders: list[dict[str, Any]]
    degraded: bool = False
