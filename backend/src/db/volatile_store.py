"""
In-process volatile record store used when the primary store is unreachable.

Best-effort degraded mode only: contents are lost on restart and are never
replayed into the primary store automatically (see FallbackRepository.unreconciled).
"""
import copy
import logging
import threading

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

logger = logging.getLogger(__name__)


class VolatileStore:
    """
    Thread-safe dict-of-dicts store keyed by (kind, id).

    Records are deep-copied on the way in and out, so callers can never observe
    or mutate a record that is halfway through an update.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._records: dict[EntityKind, dict[str, Record]] = {kind: {} for kind in EntityKind}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        """Whether the store accepts operations."""
        return self._enabled

    def _check_enabled(self, operation: str) -> None:
        if not self._enabled:
            raise StoreUnavailableError(f"Volatile store disabled ({operation})")

    def get(self, kind: EntityKind, record_id: str) -> Record | None:
        """Return a copy of one record, or None."""
        self._check_enabled("get")
        with self._lock:
            record = self._records[kind].get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def list(self, kind: EntityKind, filters: RecordFilter | None = None) -> list[Record]:
        """Return copies of matching records, newest first."""
        self._check_enabled("list")
        with self._lock:
            found = [copy.deepcopy(r) for r in self._records[kind].values() if matches(r, filters)]
        found.sort(key=lambda r: r.get("created_at", 0), reverse=True)
        return found

    def create(self, kind: EntityKind, record: Record) -> Record:
        """
        Insert a record and return a copy.

        Raises:
            RecordExistsError: If a record with the same id exists.
        """
        self._check_enabled("create")
        timestamp = now_ms()
        stored = copy.deepcopy(record)
        stored["id"] = str(stored.get("id") or new_record_id())
        stored.setdefault("created_at", timestamp)
        stored["updated_at"] = timestamp
        with self._lock:
            if stored["id"] in self._records[kind]:
                raise RecordExistsError(kind, stored["id"])
            self._records[kind][stored["id"]] = stored
        logger.debug("volatile_create kind=%s id=%s", kind.value, stored["id"])
        return copy.deepcopy(stored)

    def update(self, kind: EntityKind, record_id: str, patch: Record) -> Record | None:
        """Apply a shallow patch and return the updated copy, or None if absent."""
        self._check_enabled("update")
        with self._lock:
            existing = self._records[kind].get(record_id)
            if existing is None:
                return None
            updated = {**existing, **copy.deepcopy(clean_patch(patch)), "updated_at": now_ms()}
            self._records[kind][record_id] = updated
            return copy.deepcopy(updated)

    def delete(self, kind: EntityKind, record_id: str) -> bool:
        """Delete a record; return False if absent."""
        self._check_enabled("delete")
        with self._lock:
            return self._records[kind].pop(record_id, None) is not None

    def count(self, kind: EntityKind) -> int:
        """Number of records of a kind."""
        with self._lock:
            return len(self._records[kind])
