"""Pydantic schemas for admin diagnostics endpoints."""
from typing import Any

from pydantic import BaseModel


class CacheStatsResponse(BaseModel):
    """Snapshot of the shared TTL cache."""

    entry_count: int
    keys: list[str]
    sweeping: bool


class CacheClearResponse(BaseModel):
    """Result of clearing the cache."""

    cleared: int


class PendingRecords(BaseModel):
    """Volatile-store records of one kind that the primary store lacks."""

    kind: str
    primary_reachable: bool
    pending: list[dict[str, Any]]


class FallbackReportResponse(BaseModel):
    """Reconciliation report across all entity kinds."""

    kinds: list[PendingRecords]
    total_pending: int


class DeleteResponse(BaseModel):
    """Result of a delete."""

    deleted: bool
    degraded: bool = False
