"""Record store interface shared by the primary store and the volatile fallback."""
import time
from enum import StrEnum
from typing import Any, Protocol

from uuid6 import uuid7

Record = dict[str, Any]
RecordFilter = dict[str, Any]

# Fields managed by the stores; patches cannot overwrite them
RESERVED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class EntityKind(StrEnum):
    """Kinds of records the storefront persists."""

    USER = "users"
    CART = "carts"
    PRODUCT = "products"
    DISCOUNT = "discounts"
    ORDER = "orders"
    REVIEW = "reviews"
    SECTION = "sections"


class StoreUnavailableError(Exception):
    """Raised by a store that cannot serve a request (unreachable, timed out, disabled)."""


class RecordExistsError(Exception):
    """Raised when creating a record whose (kind, id) is already taken."""

    def __init__(self, kind: EntityKind, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.value} record '{record_id}' already exists")


class RecordStore(Protocol):
    """Async CRUD interface of the primary store."""

    async def get(self, kind: EntityKind, record_id: str) -> Record | None:
        """Return one record, or None if it does not exist."""
        ...

    async def list(self, kind: EntityKind, filters: RecordFilter | None = None) -> list[Record]:
        """Return records matching field-equality filters, newest first."""
        ...

    async def create(self, kind: EntityKind, record: Record) -> Record:
        """Insert a record and return it; raises RecordExistsError if the id is taken."""
        ...

    async def update(self, kind: EntityKind, record_id: str, patch: Record) -> Record | None:
        """Apply a shallow patch; return the updated record or None if absent."""
        ...

    async def delete(self, kind: EntityKind, record_id: str) -> bool:
        """Delete a record; return False if absent."""
        ...

    async def ping(self) -> bool:
        """Check connectivity without raising."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


def now_ms() -> int:
    """Current time in epoch milliseconds (record timestamp unit)."""
    return int(time.time() * 1000)


def new_record_id() -> str:
    """Generate a time-ordered record id."""
    return str(uuid7())


def matches(record: Record, filters: RecordFilter | None) -> bool:
    """Check a record against field-equality filters."""
    if not filters:
        return True
    return all(record.get(field) == value for field, value in filters.items())


def clean_patch(patch: Record) -> Record:
    """Drop store-managed fields from a patch."""
    return {k: v for k, v in patch.items() if k not in RESERVED_FIELDS}
