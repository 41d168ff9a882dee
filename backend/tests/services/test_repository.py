"""Tests for the fallback repository facade."""
import asyncio
import logging

import pytest

from db.stores import EntityKind
from db.volatile_store import VolatileStore
from services.exceptions import (
    ConflictError,
    MalformedInputError,
    NotFoundError,
    UnavailableError,
)
from services.repository import FallbackRepository, WriteOp
from tests.conftest import FlakyStore


class TestReads:
    """Tests for reads across tiers."""

    async def test_primary_read_is_flagged(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """Successful primary reads report primary_used."""
        primary.backing.create(EntityKind.ORDER, {"id": "o1"})
        result = await repo.get(EntityKind.ORDER, "o1")
        assert result.value["id"] == "o1"
        assert result.primary_used is True

    async def test_list_merges_volatile_records_for_merge_kinds(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """Volatile-only products appear in listings; the primary copy wins on id."""
        primary.backing.create(EntityKind.PRODUCT, {"id": "p1", "name": "primary"})
        volatile.create(EntityKind.PRODUCT, {"id": "p1", "name": "volatile"})
        volatile.create(EntityKind.PRODUCT, {"id": "p2", "name": "volatile-only"})

        result = await repo.list(EntityKind.PRODUCT)
        names = {p["id"]: p["name"] for p in result.value}
        assert names == {"p1": "primary", "p2": "volatile-only"}
        assert result.primary_used is True

    async def test_users_merge_on_email(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """A user present in both tiers under different ids appears once."""
        primary.backing.create(EntityKind.USER, {"id": "a", "email": "ann@example.com"})
        volatile.create(EntityKind.USER, {"id": "b", "email": "ANN@example.com"})
        result = await repo.list(EntityKind.USER)
        assert [u["id"] for u in result.value] == ["a"]

    async def test_non_merge_kinds_ignore_volatile_when_primary_is_up(
        self, repo: FallbackRepository, volatile: VolatileStore,
    ) -> None:
        """Orders are read from the primary store alone while it answers."""
        volatile.create(EntityKind.ORDER, {"id": "o1"})
        assert (await repo.list(EntityKind.ORDER)).value == []
        with pytest.raises(NotFoundError):
            await repo.get(EntityKind.ORDER, "o1")

    async def test_get_falls_through_to_volatile_for_merge_kinds(
        self, repo: FallbackRepository, volatile: VolatileStore,
    ) -> None:
        """A product only in the volatile store is found by id."""
        volatile.create(EntityKind.PRODUCT, {"id": "p9"})
        result = await repo.get(EntityKind.PRODUCT, "p9")
        assert result.value["id"] == "p9"
        assert result.primary_used is True

    async def test_primary_down_serves_volatile(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """When the primary store fails, the volatile store answers."""
        volatile.create(EntityKind.ORDER, {"id": "o1", "user_id": "u1"})
        primary.available = False
        result = await repo.list(EntityKind.ORDER, {"user_id": "u1"})
        assert [o["id"] for o in result.value] == ["o1"]
        assert result.primary_used is False

    async def test_primary_down_missing_record_is_not_found(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """A record absent from the volatile store is NotFound, not Unavailable."""
        primary.available = False
        with pytest.raises(NotFoundError):
            await repo.get(EntityKind.PRODUCT, "nope")

    async def test_read_dispatches_on_id(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """read() fetches by id when given one, otherwise lists."""
        primary.backing.create(EntityKind.REVIEW, {"id": "r1", "status": "approved"})
        assert (await repo.read(EntityKind.REVIEW, "r1")).value["id"] == "r1"
        listed = await repo.read(EntityKind.REVIEW, filters={"status": "approved"})
        assert [r["id"] for r in listed.value] == ["r1"]


class TestWrites:
    """Tests for writes across tiers."""

    async def test_create_goes_to_primary(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """Writes land in the primary store when it is up."""
        result = await repo.create(EntityKind.ORDER, {"items": [1]})
        assert result.primary_used is True
        assert primary.backing.count(EntityKind.ORDER) == 1
        assert volatile.count(EntityKind.ORDER) == 0

    async def test_create_falls_back_when_primary_down(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A failed primary write lands in the volatile store and is logged as degraded."""
        primary.available = False
        with caplog.at_level(logging.WARNING, logger="services.repository"):
            result = await repo.create(EntityKind.ORDER, {"items": [1]})
        assert result.primary_used is False
        assert volatile.get(EntityKind.ORDER, result.value["id"]) is not None
        assert any(r.getMessage() == "primary_store_unavailable" for r in caplog.records)

    async def test_primary_is_attempted_once_per_operation(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """A primary failure falls back immediately without retrying."""
        primary.available = False
        await repo.create(EntityKind.ORDER, {"items": [1]})
        assert primary.calls == 1

    async def test_both_tiers_down_is_unavailable(
        self, primary: FlakyStore, caplog: pytest.LogCaptureFixture,
    ) -> None:
        """With the fallback disabled, a primary failure is surfaced as Unavailable."""
        repo = FallbackRepository(primary, VolatileStore(enabled=False))
        primary.available = False
        with caplog.at_level(logging.ERROR, logger="services.repository"), \
                pytest.raises(UnavailableError):
            await repo.list(EntityKind.PRODUCT)
        assert any(r.getMessage() == "storage_exhausted" for r in caplog.records)
        with pytest.raises(UnavailableError):
            await repo.create(EntityKind.PRODUCT, {"name": "x"})

    async def test_disabled_fallback_does_not_affect_healthy_primary(
        self, primary: FlakyStore,
    ) -> None:
        """Merged reads skip a disabled volatile store silently."""
        repo = FallbackRepository(primary, VolatileStore(enabled=False))
        primary.backing.create(EntityKind.PRODUCT, {"id": "p1"})
        assert [p["id"] for p in (await repo.list(EntityKind.PRODUCT)).value] == ["p1"]

    async def test_create_with_taken_id_is_conflict(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """A create never replaces an existing record."""
        await repo.create(EntityKind.ORDER, {"id": "o1", "user_id": "u1"})
        with pytest.raises(ConflictError):
            await repo.create(EntityKind.ORDER, {"id": "o1", "user_id": "u2"})
        assert primary.backing.get(EntityKind.ORDER, "o1")["user_id"] == "u1"

    async def test_create_with_taken_id_in_volatile_is_conflict(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """The same holds for a degraded-mode create."""
        primary.available = False
        await repo.create(EntityKind.CART, {"id": "c1", "items": []})
        with pytest.raises(ConflictError):
            await repo.create(EntityKind.CART, {"id": "c1", "items": [{"id": "x"}]})
        assert volatile.get(EntityKind.CART, "c1")["items"] == []

    async def test_update_falls_through_to_volatile_for_merge_kinds(
        self, repo: FallbackRepository, volatile: VolatileStore,
    ) -> None:
        """A product surfaced from the volatile store can be updated there."""
        volatile.create(EntityKind.PRODUCT, {"id": "p1", "price": 1})
        result = await repo.update(EntityKind.PRODUCT, "p1", {"price": 2})
        assert result.value["price"] == 2
        assert result.primary_used is False

    async def test_update_missing_everywhere_is_not_found(self, repo: FallbackRepository) -> None:
        """Updating a record nobody has raises NotFound."""
        with pytest.raises(NotFoundError):
            await repo.update(EntityKind.ORDER, "nope", {"status": "new"})

    async def test_delete_in_each_tier(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """Deletes hit the primary store, then the volatile store for merge kinds."""
        primary.backing.create(EntityKind.DISCOUNT, {"id": "d1"})
        volatile.create(EntityKind.DISCOUNT, {"id": "d2"})
        assert (await repo.delete(EntityKind.DISCOUNT, "d1")).primary_used is True
        assert (await repo.delete(EntityKind.DISCOUNT, "d2")).primary_used is False
        with pytest.raises(NotFoundError):
            await repo.delete(EntityKind.DISCOUNT, "d3")

    async def test_write_dispatch(self, repo: FallbackRepository) -> None:
        """write() routes create, update and delete; id-less mutations are malformed."""
        created = await repo.write(EntityKind.ORDER, WriteOp.CREATE, {"status": "new"})
        order_id = created.value["id"]
        updated = await repo.write(EntityKind.ORDER, WriteOp.UPDATE, {"status": "shipped"}, order_id)
        assert updated.value["status"] == "shipped"
        assert (await repo.write(EntityKind.ORDER, WriteOp.DELETE, record_id=order_id)).value
        with pytest.raises(MalformedInputError):
            await repo.write(EntityKind.ORDER, WriteOp.UPDATE, {"status": "x"})


class TestRecovery:
    """Tests for behavior across a primary outage and recovery."""

    async def test_degraded_write_remains_visible_after_recovery(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """A product created during an outage is still listed once the primary returns."""
        primary.available = False
        created = await repo.create(EntityKind.PRODUCT, {"name": "outage special"})
        primary.available = True
        listed = await repo.list(EntityKind.PRODUCT)
        assert created.value["id"] in {p["id"] for p in listed.value}

    async def test_unreconciled_reports_volatile_only_records(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """Records only the volatile store holds are reported as pending."""
        primary.backing.create(EntityKind.USER, {"id": "a", "email": "a@x.io"})
        volatile.create(EntityKind.USER, {"id": "b", "email": "A@x.io"})
        volatile.create(EntityKind.USER, {"id": "c", "email": "c@x.io"})
        report = await repo.unreconciled(EntityKind.USER)
        assert report.primary_reachable is True
        assert [u["id"] for u in report.pending] == ["c"]

    async def test_unreconciled_with_primary_down_reports_everything(
        self, repo: FallbackRepository, primary: FlakyStore, volatile: VolatileStore,
    ) -> None:
        """Without the primary store, every volatile record is pending."""
        volatile.create(EntityKind.ORDER, {"id": "o1"})
        primary.available = False
        report = await repo.unreconciled(EntityKind.ORDER)
        assert report.primary_reachable is False
        assert [o["id"] for o in report.pending] == ["o1"]

    async def test_concurrent_calls_fall_back_independently(
        self, repo: FallbackRepository, primary: FlakyStore,
    ) -> None:
        """Many in-flight writes during an outage all succeed in the volatile store."""
        primary.available = False
        results = await asyncio.gather(
            *(repo.create(EntityKind.REVIEW, {"n": i}) for i in range(20)),
        )
        assert all(not r.primary_used for r in results)
        assert len({r.value["id"] for r in results}) == 20
