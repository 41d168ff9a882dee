"""
Primary (durable) record store over SQLAlchemy asyncio.

Every driver error, OS error, and timeout is normalized to StoreUnavailableError so
the repository facade can treat them uniformly as "fall back". This layer never
retries; a single failure is reported immediately.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import ColumnElement, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from db.session import create_session_factory
from db.stores import (
    EntityKind,
    Record,
    RecordExistsError,
    RecordFilter,
    StoreUnavailableError,
    clean_patch,
    matches,
    new_record_id,
    now_ms,
)
from models.record import Base, StoredRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_record(row: StoredRecord) -> Record:
    return {**row.data, "id": row.id, "created_at": row.created_at, "updated_at": row.updated_at}


def _filter_clause(field: str, value: Any) -> ColumnElement[bool] | None:
    """SQL equality clause for one filter, or None if it must be checked in Python."""
    if field == "id":
        return StoredRecord.id == str(value)
    if field in ("created_at", "updated_at"):
        return getattr(StoredRecord, field) == value if isinstance(value, int) else None
    element = StoredRecord.data[field]
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


class SqlRecordStore:
    """Record store backed by the `records` table."""

    def __init__(self, engine: AsyncEngine, timeout: float = 5.0) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._timeout = timeout
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        """Create tables on first use. Retried on the next call if it fails."""
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True
            logger.info("primary_store_schema_ready")

    async def _run(
        self,
        operation: str,
        kind: EntityKind | None,
        fn: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        async def _call() -> T:
            await self._ensure_schema()
            async with self._session_factory() as session, session.begin():
                return await fn(session)

        try:
            return await asyncio.wait_for(_call(), timeout=self._timeout)
        except (SQLAlchemyError, OSError, TimeoutError) as e:
            logger.warning(
                "primary_store_error",
                extra={
                    "operation": operation,
                    "kind": kind.value if kind else None,
                    "error": type(e).__name__,
                },
            )
            raise StoreUnavailableError(f"Primary store {operation} failed: {e}") from e

    async def get(self, kind: EntityKind, record_id: str) -> Record | None:
        """Return one record, or None if it does not exist."""
        async def _get(session: AsyncSession) -> Record | None:
            row = await session.get(StoredRecord, (kind.value, record_id))
            return _to_record(row) if row is not None else None

        return await self._run("get", kind, _get)

    async def list(self, kind: EntityKind, filters: RecordFilter | None = None) -> list[Record]:
        """
        Return records matching field-equality filters, newest first.

        Scalar filter values are matched in SQL; other values (None, lists,
        objects) are checked on the fetched rows.
        """
        async def _list(session: AsyncSession) -> list[Record]:
            query = select(StoredRecord).where(StoredRecord.kind == kind.value)
            remaining: RecordFilter = {}
            for field, value in (filters or {}).items():
                clause = _filter_clause(field, value)
                if clause is None:
                    remaining[field] = value
                else:
                    query = query.where(clause)
            result = await session.execute(query.order_by(StoredRecord.created_at.desc()))
            records = [_to_record(row) for row in result.scalars().all()]
            return [r for r in records if matches(r, remaining)]

        return await self._run("list", kind, _list)

    async def create(self, kind: EntityKind, record: Record) -> Record:
        """
        Insert a record; an id is generated when absent.

        Raises:
            RecordExistsError: If a record with the same id exists.
        """
        async def _create(session: AsyncSession) -> Record:
            timestamp = now_ms()
            record_id = str(record.get("id") or new_record_id())
            if await session.get(StoredRecord, (kind.value, record_id)) is not None:
                raise RecordExistsError(kind, record_id)
            row = StoredRecord(
                kind=kind.value,
                id=record_id,
                data=clean_patch(record),
                created_at=record.get("created_at") or timestamp,
                updated_at=timestamp,
            )
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent insert of the same id
                raise RecordExistsError(kind, record_id) from e
            return _to_record(row)

        return await self._run("create", kind, _create)

    async def update(self, kind: EntityKind, record_id: str, patch: Record) -> Record | None:
        """Apply a shallow patch; return the updated record or None if absent."""
        async def _update(session: AsyncSession) -> Record | None:
            row = await session.get(StoredRecord, (kind.value, record_id))
            if row is None:
                return None
            # Reassign (not mutate) so the JSON column is marked dirty
            row.data = {**row.data, **clean_patch(patch)}
            row.updated_at = now_ms()
            await session.flush()
            return _to_record(row)

        return await self._run("update", kind, _update)

    async def delete(self, kind: EntityKind, record_id: str) -> bool:
        """Delete a record; return False if absent."""
        async def _delete(session: AsyncSession) -> bool:
            row = await session.get(StoredRecord, (kind.value, record_id))
            if row is None:
                return False
            await session.delete(row)
            return True

        return await self._run("delete", kind, _delete)

    async def ping(self) -> bool:
        """Check primary store connectivity."""
        async def _ping(session: AsyncSession) -> Any:
            return await session.execute(text("SELECT 1"))

        try:
            await self._run("ping", None, _ping)
        except StoreUnavailableError:
            return False
        return True

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()
