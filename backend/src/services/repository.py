"""
Fallback repository: reads and writes across the primary store and the volatile store.

Each call walks the same decision path independently:

    attempt primary
      success (write) -> primary result
      success (read)  -> for merge kinds, add volatile records whose merge key the
                         primary result lacks (primary wins on conflict)
      failure         -> log a degraded-mode event, attempt the volatile store
                           success -> volatile result (primary_used=False)
                           failure -> UnavailableError (both tiers exhausted)

The primary store is never retried within one call, and no lock is held across a
primary store round trip.

Known limitation: a write that lands only in the volatile store is never replayed
into the primary store. Such records remain visible through merged reads (for
merge kinds) and are listed by unreconciled() until reconciled out of band.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from db.stores import (
    EntityKind,
    Record,
    RecordExistsError,
    RecordFilter,
    RecordStore,
    StoreUnavailableError,
)
from db.volatile_store import VolatileStore
from services.exceptions import (
    ConflictError,
    MalformedInputError,
    NotFoundError,
    UnavailableError,
)
from services.merge import MERGE_KEYS, id_merge_key, merge_by_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WriteOp(StrEnum):
    """Write operations accepted by FallbackRepository.write."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RepositoryResult(Generic[T]):
    """A repository value and whether the primary store produced it."""

    value: T
    primary_used: bool


@dataclass
class ReconciliationReport:
    """Volatile-store records the primary store does not know about."""

    kind: EntityKind
    primary_reachable: bool
    pending: list[Record] = field(default_factory=list)


class FallbackRepository:
    """Per-entity-kind data access over a primary store and a volatile fallback."""

    def __init__(self, primary: RecordStore, volatile: VolatileStore) -> None:
        self._primary = primary
        self._volatile = volatile

    @staticmethod
    def merges(kind: EntityKind) -> bool:
        """Whether reads of kind combine both tiers."""
        return kind in MERGE_KEYS

    def _degraded(self, kind: EntityKind, operation: str, error: Exception) -> None:
        logger.warning(
            "primary_store_unavailable",
            extra={"kind": kind.value, "operation": operation, "error": str(error)},
        )

    def _fallback(
        self,
        kind: EntityKind,
        operation: str,
        fn: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run a volatile-store operation as the last tier."""
        try:
            return fn(*args)
        except StoreUnavailableError as e:
            logger.error(
                "storage_exhausted",
                extra={"kind": kind.value, "operation": operation, "error": str(e)},
            )
            raise UnavailableError(kind.value, operation) from e

    def _volatile_supplement(
        self,
        kind: EntityKind,
        operation: str,
        fn: Callable[..., T],
        *args: Any,
        default: T,
    ) -> T:
        """Consult the volatile store alongside a successful primary read."""
        try:
            return fn(*args)
        except StoreUnavailableError as e:
            logger.debug("volatile_supplement_skipped kind=%s op=%s: %s", kind.value, operation, e)
            return default

    # ----------------------------------------------------------------------
    # Reads
    # ----------------------------------------------------------------------

    async def get(self, kind: EntityKind, record_id: str) -> RepositoryResult[Record]:
        """
        Fetch one record.

        Raises:
            NotFoundError: If no consulted tier has the record.
            UnavailableError: If both tiers failed.
        """
        try:
            record = await self._primary.get(kind, record_id)
        except StoreUnavailableError as e:
            self._degraded(kind, "get", e)
            record = self._fallback(kind, "get", self._volatile.get, kind, record_id)
            if record is None:
                raise NotFoundError(kind.value, record_id) from None
            return RepositoryResult(record, primary_used=False)

        if record is None and self.merges(kind):
            record = self._volatile_supplement(
                kind, "get", self._volatile.get, kind, record_id, default=None,
            )
        if record is None:
            raise NotFoundError(kind.value, record_id)
        return RepositoryResult(record, primary_used=True)

    async def list(
        self,
        kind: EntityKind,
        filters: RecordFilter | None = None,
    ) -> RepositoryResult[list[Record]]:
        """List records matching filters, merged across tiers for merge kinds."""
        try:
            records = await self._primary.list(kind, filters)
        except StoreUnavailableError as e:
            self._degraded(kind, "list", e)
            records = self._fallback(kind, "list", self._volatile.list, kind, filters)
            return RepositoryResult(records, primary_used=False)

        merge_key = MERGE_KEYS.get(kind)
        if merge_key is not None:
            volatile_records = self._volatile_supplement(
                kind, "list", self._volatile.list, kind, filters, default=[],
            )
            if volatile_records:
                records = merge_by_key(records, volatile_records, merge_key)
        return RepositoryResult(records, primary_used=True)

    async def read(
        self,
        kind: EntityKind,
        record_id: str | None = None,
        filters: RecordFilter | None = None,
    ) -> RepositoryResult[Any]:
        """Fetch one record by id, or list records by filter."""
        if record_id is not None:
            return await self.get(kind, record_id)
        return await self.list(kind, filters)

    # ----------------------------------------------------------------------
    # Writes
    # ----------------------------------------------------------------------

    async def create(self, kind: EntityKind, record: Record) -> RepositoryResult[Record]:
        """
        Create a record in the primary store, or the volatile store if it is down.

        Never replaces an existing record.

        Raises:
            ConflictError: If the target tier already holds a record with this id.
            UnavailableError: If both tiers failed.
        """
        try:
            created = await self._primary.create(kind, record)
        except RecordExistsError as e:
            raise ConflictError(f"{e.kind.value} '{e.record_id}' already exists") from e
        except StoreUnavailableError as e:
            self._degraded(kind, "create", e)
            try:
                created = self._fallback(kind, "create", self._volatile.create, kind, record)
            except RecordExistsError as exists:
                raise ConflictError(
                    f"{exists.kind.value} '{exists.record_id}' already exists",
                ) from exists
            logger.warning(
                "volatile_write_unreconciled",
                extra={"kind": kind.value, "operation": "create", "record_id": created["id"]},
            )
            return RepositoryResult(created, primary_used=False)
        return RepositoryResult(created, primary_used=True)

    async def update(
        self,
        kind: EntityKind,
        record_id: str,
        patch: Record,
    ) -> RepositoryResult[Record]:
        """
        Patch a record.

        For merge kinds, a record the primary store reports as absent is looked up
        in the volatile store, since merged reads may have surfaced it from there.

        Raises:
            NotFoundError: If the record is absent from every consulted tier.
            UnavailableError: If both tiers failed.
        """
        try:
            updated = await self._primary.update(kind, record_id, patch)
        except StoreUnavailableError as e:
            self._degraded(kind, "update", e)
            updated = self._fallback(
                kind, "update", self._volatile.update, kind, record_id, patch,
            )
            if updated is None:
                raise NotFoundError(kind.value, record_id) from None
            return RepositoryResult(updated, primary_used=False)

        if updated is not None:
            return RepositoryResult(updated, primary_used=True)
        if self.merges(kind):
            updated = self._volatile_supplement(
                kind, "update", self._volatile.update, kind, record_id, patch, default=None,
            )
            if updated is not None:
                return RepositoryResult(updated, primary_used=False)
        raise NotFoundError(kind.value, record_id)

    async def delete(self, kind: EntityKind, record_id: str) -> RepositoryResult[bool]:
        """
        Delete a record.

        Raises:
            NotFoundError: If the record is absent from every consulted tier.
            UnavailableError: If both tiers failed.
        """
        try:
            deleted = await self._primary.delete(kind, record_id)
        except StoreUnavailableError as e:
            self._degraded(kind, "delete", e)
            deleted = self._fallback(kind, "delete", self._volatile.delete, kind, record_id)
            if not deleted:
                raise NotFoundError(kind.value, record_id) from None
            return RepositoryResult(True, primary_used=False)

        if deleted:
            return RepositoryResult(True, primary_used=True)
        if self.merges(kind) and self._volatile_supplement(
            kind, "delete", self._volatile.delete, kind, record_id, default=False,
        ):
            return RepositoryResult(True, primary_used=False)
        raise NotFoundError(kind.value, record_id)

    async def write(
        self,
        kind: EntityKind,
        op: WriteOp,
        payload: Record | None = None,
        record_id: str | None = None,
    ) -> RepositoryResult[Any]:
        """Dispatch a create, update, or delete."""
        if op is WriteOp.CREATE:
            return await self.create(kind, payload or {})
        if record_id is None:
            raise MalformedInputError(f"{op.value} requires a record id")
        if op is WriteOp.UPDATE:
            return await self.update(kind, record_id, payload or {})
        return await self.delete(kind, record_id)

    # ----------------------------------------------------------------------
    # Reconciliation
    # ----------------------------------------------------------------------

    async def unreconciled(self, kind: EntityKind) -> ReconciliationReport:
        """
        Report volatile-store records that the primary store does not have.

        Nothing is replayed; this only surfaces degraded-mode writes so they are
        not silently lost. When the primary store is unreachable every volatile
        record is reported.
        """
        volatile_records = self._fallback(kind, "unreconciled", self._volatile.list, kind, None)
        try:
            primary_records = await self._primary.list(kind, None)
        except StoreUnavailableError as e:
            self._degraded(kind, "unreconciled", e)
            return ReconciliationReport(kind, primary_reachable=False, pending=volatile_records)

        key = MERGE_KEYS.get(kind, id_merge_key)
        known = {key(r) for r in primary_records} - {None}
        pending = [r for r in volatile_records if key(r) is None or key(r) not in known]
        return ReconciliationReport(kind, primary_reachable=True, pending=pending)
