"""Pydantic schemas for catalog section endpoints."""
from typing import Any

from pydantic import BaseModel, Field


class SectionCreate(BaseModel):
    """Schema for creating a section."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class SectionUpdate(BaseModel):
    """Schema for patching a section."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class SectionResponse(BaseModel):
    """A single section record."""

    section: dict[str, Any]
    degraded: bool = False


class SectionListResponse(BaseModel):
    """Schema for section listings."""

    sections: list[dict[str, Any]]
    degraded: bool = False
