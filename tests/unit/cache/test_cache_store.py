"""
feedcache — Cache Store Tests

Two-tier behavior: TTL boundaries, durable-first reads with promotion,
purging of expired entries, namespace-scoped clearing, and degradation to
memory-only operation when the durable tier fails.
"""

import logging

import pytest

from feedcache.cache.backends.memory import MemoryTier
from feedcache.cache.backends.sqlite import SQLiteStorage
from feedcache.cache.entry import PagedEntry, SingleEntry
from feedcache.cache.store import CacheStore
from feedcache.errors import StorageUnavailableError
from feedcache.models import Page, PaginationMeta


class TestTtlBoundaries:
    """An entry is present until ttl has elapsed and absent right after."""

    def test_present_one_millisecond_before_expiry(self, store: CacheStore, clock) -> None:
        store.set("users", SingleEntry.create(["alice"], ttl=300, now=clock()))

        clock.advance(299.999)
        entry = store.get("users")

        assert entry is not None
        assert entry.payload == ["alice"]

    def test_absent_one_millisecond_after_expiry(self, store: CacheStore, clock) -> None:
        store.set("users", SingleEntry.create(["alice"], ttl=300, now=clock()))

        clock.advance(300.001)

        assert store.get("users") is None
        # Expired entries are purged on access
        assert "users" not in store.fast
        assert store.get_stats()["expired"] == 1

    def test_expired_entry_purged_from_durable_tier(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        durable_store.set("users", SingleEntry.create([1], ttl=10, now=clock()))
        assert sqlite_storage.get_item("test_users") is not None

        clock.advance(11)

        assert durable_store.get("users") is None
        assert sqlite_storage.get_item("test_users") is None

    def test_missing_key(self, store: CacheStore) -> None:
        assert store.get("nothing") is None
        assert store.get_stats()["misses"] == 1


class TestTwoTierReads:
    """Durable tier is consulted first and its entries promoted."""

    def test_durable_entry_promoted_into_fresh_fast_tier(self, sqlite_storage: SQLiteStorage, clock) -> None:
        writer = CacheStore(durable=sqlite_storage, namespace="test_", clock=clock)
        writer.set("users", SingleEntry.create([{"id": 1}], ttl=300, now=clock()))

        # Simulates a restart: same durable tier, empty fast tier
        reader = CacheStore(fast=MemoryTier(), durable=sqlite_storage, namespace="test_", clock=clock)
        assert "users" not in reader.fast

        entry = reader.get("users")

        assert entry is not None
        assert entry.payload == [{"id": 1}]
        assert "users" in reader.fast

    def test_durable_tier_wins_over_fast_tier(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        durable_store.fast.set("users", SingleEntry.create(["fast"], ttl=300, now=clock()))
        sqlite_storage.set_item("test_users", SingleEntry.create(["durable"], ttl=300, now=clock()).model_dump_json())

        entry = durable_store.get("users")

        assert entry.payload == ["durable"]  # type: ignore[union-attr]

    def test_fast_tier_only_read(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        sqlite_storage.set_item("test_users", SingleEntry.create(["durable"], ttl=300, now=clock()).model_dump_json())

        assert durable_store.get("users", durable=False) is None

    def test_undecodable_durable_value_discarded(self, durable_store: CacheStore, sqlite_storage) -> None:
        sqlite_storage.set_item("test_users", "{not json")

        assert durable_store.get("users") is None
        assert sqlite_storage.get_item("test_users") is None

    def test_paged_entry_round_trip(self, durable_store: CacheStore, sqlite_storage, clock, post_factory) -> None:
        pages = [
            Page(items=post_factory(10, start_id=11), pagination=PaginationMeta.compute(2, 10, 25)),
            Page(items=post_factory(10), pagination=PaginationMeta.compute(1, 10, 25)),
        ]
        durable_store.set("posts_10_owner=all", PagedEntry.create(pages, ttl=300, now=clock()))

        reader = CacheStore(durable=sqlite_storage, namespace="test_", clock=clock)
        entry = reader.get("posts_10_owner=all")

        assert isinstance(entry, PagedEntry)
        assert [page.page_number for page in entry.pages] == [1, 2]
        assert entry.pages[0].items == post_factory(10)
        assert entry.pages[1].pagination.has_more is True

    def test_durable_write_skipped_when_disabled(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        durable_store.set("users", SingleEntry.create([1], ttl=300, now=clock()), durable=False)

        assert sqlite_storage.get_item("test_users") is None
        assert durable_store.get("users", durable=False) is not None


class TestStorageDegradation:
    """A failing durable tier never propagates to the caller."""

    def test_set_and_get_fall_back_to_memory(self, failing_storage, clock, caplog: pytest.LogCaptureFixture) -> None:
        store = CacheStore(durable=failing_storage, namespace="test_", clock=clock)

        with caplog.at_level(logging.WARNING, logger="feedcache.cache.store"):
            store.set("users", SingleEntry.create(["alice"], ttl=300, now=clock()))
            entry = store.get("users")

        assert entry is not None
        assert entry.payload == ["alice"]
        assert store.degraded is True
        assert store.get_stats()["durable_failures"] == 2
        assert any("Durable tier set failed" in record.getMessage() for record in caplog.records)

    def test_delete_and_clear_absorb_failures(self, failing_storage, clock) -> None:
        store = CacheStore(durable=failing_storage, namespace="test_", clock=clock)
        store.set("users", SingleEntry.create(["alice"], ttl=300, now=clock()))

        store.delete("users")
        store.clear()

        assert store.get("users", durable=False) is None
        assert failing_storage.calls >= 3


class TestNamespaceClear:
    def test_clear_only_removes_own_namespace(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        sqlite_storage.set_item("other_app_key", "keep me")
        durable_store.set("users", SingleEntry.create([1], ttl=300, now=clock()))
        durable_store.set("posts_10_owner=all", SingleEntry.create([2], ttl=300, now=clock()))

        durable_store.clear()

        assert sqlite_storage.keys("test_") == []
        assert sqlite_storage.get_item("other_app_key") == "keep me"
        assert durable_store.get("users") is None
        assert len(durable_store.fast) == 0

    def test_delete_removes_both_tiers(self, durable_store: CacheStore, sqlite_storage, clock) -> None:
        durable_store.set("users", SingleEntry.create([1], ttl=300, now=clock()))

        durable_store.delete("users")

        assert "users" not in durable_store.fast
        assert sqlite_storage.get_item("test_users") is None


class WriteFailingStorage(SQLiteStorage):
    """SQLite tier whose writes start failing once ``fail_writes`` is set."""

    def __init__(self, db_path: str, fail_deletes: bool = False):
        super().__init__(db_path=db_path)
        self.fail_writes = False
        self.fail_deletes = fail_deletes

    def set_item(self, key: str, value: str, ttl: float | None = None) -> None:
        if self.fail_writes:
            raise StorageUnavailableError(self.name, "set", {"reason": "quota exceeded"})
        super().set_item(key, value, ttl)

    def remove_item(self, key: str) -> None:
        if self.fail_writes and self.fail_deletes:
            raise StorageUnavailableError(self.name, "delete", {"reason": "read-only"})
        super().remove_item(key)


class TestFailedDurableWrite:
    """After a failed durable write the newer fast tier entry is returned."""

    @pytest.mark.parametrize("fail_deletes", [False, True])
    def test_get_returns_latest_committed_entry(self, tmp_path, clock, fail_deletes: bool) -> None:
        """Test get returns the newest entry, not the older durable copy."""
        storage = WriteFailingStorage(str(tmp_path / "cache.db"), fail_deletes=fail_deletes)
        store = CacheStore(durable=storage, namespace="test_", clock=clock)
        store.set("users", SingleEntry.create(["v1"], ttl=300, now=clock()))

        storage.fail_writes = True
        store.set("users", SingleEntry.create(["v2"], ttl=300, now=clock()))

        assert store.get("users").payload == ["v2"]  # type: ignore[union-attr]
        assert store.get("users").payload == ["v2"]  # type: ignore[union-attr]
        assert store.degraded is True
        storage.close()

    def test_older_durable_copy_removed(self, tmp_path, clock) -> None:
        """Test a restart does not resurrect the entry the failed write replaced."""
        storage = WriteFailingStorage(str(tmp_path / "cache.db"))
        store = CacheStore(durable=storage, namespace="test_", clock=clock)
        store.set("users", SingleEntry.create(["v1"], ttl=300, now=clock()))

        storage.fail_writes = True
        store.set("users", SingleEntry.create(["v2"], ttl=300, now=clock()))

        restarted = CacheStore(durable=storage, namespace="test_", clock=clock)
        assert restarted.get("users") is None
        storage.close()

    def test_durable_reads_resume_after_successful_write(self, tmp_path, clock) -> None:
        """Test a later successful write makes the durable tier authoritative again."""
        storage = WriteFailingStorage(str(tmp_path / "cache.db"), fail_deletes=True)
        store = CacheStore(durable=storage, namespace="test_", clock=clock)
        storage.fail_writes = True
        store.set("users", SingleEntry.create(["v1"], ttl=300, now=clock()))

        storage.fail_writes = False
        store.set("users", SingleEntry.create(["v2"], ttl=300, now=clock()))
        storage.set_item("test_users", SingleEntry.create(["v3"], ttl=300, now=clock()).model_dump_json())

        assert store.get("users").payload == ["v3"]  # type: ignore[union-attr]
        storage.close()
