"""Pydantic schemas for review endpoints."""
from typing import Any

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    """Schema for submitting a review."""

    author_name: str = Field(..., max_length=100)
    author_email: str | None = Field(default=None, max_length=320)
    rating: int
    title: str | None = Field(default=None, max_length=200)
    content: str = Field(..., max_length=5000)
    media_urls: list[str] = []


class ReviewModeration(BaseModel):
    """Schema for moderating a review."""

    status: str | None = None
    title: str | None = Field(default=None, max_length=200)
    content: str | None = Field(default=None, max_length=5000)


class ReviewResponse(BaseModel):
    """A single review record."""

    review: dict[str, Any]
    degraded: bool = False


class ReviewListResponse(BaseModel):
    """A page of reviews."""

    reviews: list[dict[str, Any]]
    total: int
    has_more: bool
    degraded: bool = False


class ReviewStatsResponse(BaseModel):
    """Aggregate rating statistics over approved reviews."""

    total_reviews: int
    average_rating: float
    rating_distribution: dict[str, int]
    degraded: bool = False
