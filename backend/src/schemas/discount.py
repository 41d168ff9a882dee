"""Pydantic schemas for discount endpoints."""
from typing import Any

from pydantic import BaseModel, Field


class DiscountCreate(BaseModel):
    """
    Schema for creating a discount.

    Percent is clamped to 0..90 by the service; the window defaults to the next
    seven days.
    """

    name: str = Field(..., min_length=1, max_length=200)
    percent: float = 0
    starts_at: int | None = None
    ends_at: int | None = None
    active: bool = False
    product_ids: list[str] = []
    section_ids: list[str] = []


class DiscountUpdate(BaseModel):
    """Schema for patching a discount."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    percent: float | None = None
    starts_at: int | None = None
    ends_at: int | None = None
    active: bool | None = None
    product_ids: list[str] | None = None
    section_ids: list[str] | None = None


class DiscountListResponse(BaseModel):
    """Schema for discount listings."""

    discounts: list[dict[str, Any]]
    degraded: bool = False


class DiscountResponse(BaseModel):
    """A single discount record."""

    discount: dict[str, Any]
    degraded: bool = False
