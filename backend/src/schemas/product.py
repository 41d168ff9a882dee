"""Pydantic schemas for catalog endpoints."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    """Schema for creating a product; extra attributes are stored as given."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=300)
    price: float = Field(..., ge=0)
    section_id: str | None = None
    description: str = ""


class ProductUpdate(BaseModel):
    """Schema for patching a product; only provided fields change."""

    model_config = ConfigDict(extra="allow")

    name: str | None = Field(default=None, min_length=1, max_length=300)
    price: float | None = Field(default=None, ge=0)
    section_id: str | None = None
    description: str | None = None


class Pagination(BaseModel):
    """Offset pagination metadata."""

    current_page: int
    total_pages: int
    total_products: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class ProductPage(BaseModel):
    """One page of the product listing, with the sections used to label it."""

    products: list[dict[str, Any]]
    pagination: Pagination
    sections: list[dict[str, Any]] = []


class ProductResponse(BaseModel):
    """A single product record."""

    product: dict[str, Any]
    degraded: bool = False
