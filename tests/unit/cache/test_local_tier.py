"""
TierCache - Local Tier (L1) Tests

Tests LRU eviction, TTL expiry (passive and swept), access bookkeeping and
the sweep task lifecycle. TTLs run against a fake clock, not wall time.
"""

import asyncio

import pytest

from tests.conftest import FakeClock
from tiercache.cache.entry import CacheEntry
from tiercache.cache.local import LocalTier


class TestLocalTier:
    """Test suite for LocalTier."""

    @pytest.fixture
    def tier(self, clock: FakeClock) -> LocalTier:
        """A small L1 with a 60s default TTL on a fake clock."""
        return LocalTier(max_keys=10, default_ttl=60, check_period=0, clock=clock)

    def test_initialization(self) -> None:
        """Constructor parameters are kept."""
        tier = LocalTier(max_keys=100, default_ttl=1800, check_period=30)
        assert tier.max_keys == 100
        assert tier.default_ttl == 1800
        assert tier.check_period == 30
        assert len(tier) == 0

    def test_invalid_capacity(self) -> None:
        """A tier must be able to hold at least one key."""
        with pytest.raises(ValueError):
            LocalTier(max_keys=0)

    def test_set_and_get(self, tier: LocalTier) -> None:
        """A stored entry is returned by reference."""
        entry = CacheEntry.create({"name": "Ann"})
        tier.set("k", entry)

        assert tier.get("k") is entry
        assert tier.sets == 1

    def test_get_missing(self, tier: LocalTier) -> None:
        """Unknown keys return None."""
        assert tier.get("missing") is None

    def test_hit_updates_access_stats(self, tier: LocalTier) -> None:
        """Every hit increments access_count in place."""
        entry = CacheEntry.create("v")
        tier.set("k", entry)

        tier.get("k")
        tier.get("k")
        tier.get("k")

        assert entry.metadata.access_count == 3

    def test_ttl_expiration(self, tier: LocalTier, clock: FakeClock) -> None:
        """Entries expire once their TTL has elapsed."""
        tier.set("k", CacheEntry.create("v"), ttl=10)

        clock.advance(9)
        assert tier.get("k") is not None

        clock.advance(1)
        assert tier.get("k") is None
        assert tier.expirations == 1
        assert len(tier) == 0

    def test_ttl_none_uses_default(self, tier: LocalTier, clock: FakeClock) -> None:
        """ttl=None falls back to the default TTL."""
        tier.set("k", CacheEntry.create("v"))

        clock.advance(59)
        assert tier.get("k") is not None
        clock.advance(1)
        assert tier.get("k") is None

    def test_ttl_zero_no_expiry(self, tier: LocalTier, clock: FakeClock) -> None:
        """ttl=0 means the entry never expires."""
        tier.set("k", CacheEntry.create("v"), ttl=0)

        clock.advance(10**9)
        assert tier.get("k") is not None

    def test_overwrite_resets_ttl(self, tier: LocalTier, clock: FakeClock) -> None:
        """Re-setting a key replaces its entry and expiry."""
        tier.set("k", CacheEntry.create("old"), ttl=10)
        clock.advance(8)
        tier.set("k", CacheEntry.create("new"), ttl=10)
        clock.advance(8)

        entry = tier.get("k")
        assert entry is not None
        assert entry.data == "new"
        assert len(tier) == 1

    def test_lru_eviction(self, tier: LocalTier) -> None:
        """At capacity, the least recently used key is evicted."""
        for i in range(10):
            tier.set(f"key{i}", CacheEntry.create(i))

        # key0 becomes most recently used
        tier.get("key0")
        tier.set("key10", CacheEntry.create(10))

        assert len(tier) == 10
        assert tier.evictions == 1
        assert "key1" not in tier
        assert "key0" in tier
        assert "key10" in tier

    def test_capacity_prefers_expired_entries(self, tier: LocalTier, clock: FakeClock) -> None:
        """Expired entries are purged before a live key is evicted."""
        tier.set("short", CacheEntry.create("s"), ttl=5)
        for i in range(9):
            tier.set(f"key{i}", CacheEntry.create(i), ttl=100)

        clock.advance(6)
        tier.set("new", CacheEntry.create("n"))

        assert tier.evictions == 0
        assert tier.expirations == 1
        assert all(f"key{i}" in tier for i in range(9))
        assert "new" in tier

    def test_overwrite_at_capacity_does_not_evict(self, tier: LocalTier) -> None:
        """Updating an existing key never evicts another one."""
        for i in range(10):
            tier.set(f"key{i}", CacheEntry.create(i))

        tier.set("key5", CacheEntry.create("updated"))

        assert tier.evictions == 0
        assert len(tier) == 10

    def test_delete(self, tier: LocalTier) -> None:
        """delete() reports whether the key existed."""
        tier.set("k", CacheEntry.create("v"))

        assert tier.delete("k") is True
        assert tier.get("k") is None
        assert tier.delete("k") is False
        assert tier.deletes == 1

    def test_keys_excludes_expired(self, tier: LocalTier, clock: FakeClock) -> None:
        """keys() lists live keys only, oldest first."""
        tier.set("a", CacheEntry.create(1), ttl=5)
        tier.set("b", CacheEntry.create(2), ttl=50)
        tier.set("c", CacheEntry.create(3), ttl=50)

        clock.advance(10)

        assert tier.keys() == ["b", "c"]

    def test_purge_expired(self, tier: LocalTier, clock: FakeClock) -> None:
        """purge_expired() removes every dead entry at once."""
        for i in range(3):
            tier.set(f"dead{i}", CacheEntry.create(i), ttl=1)
        tier.set("alive", CacheEntry.create("v"), ttl=100)

        clock.advance(2)

        assert tier.purge_expired() == 3
        assert len(tier) == 1

    def test_flush_all(self, tier: LocalTier) -> None:
        """flush_all() empties the tier."""
        for i in range(5):
            tier.set(f"key{i}", CacheEntry.create(i))

        assert tier.flush_all() == 5
        assert len(tier) == 0
        assert tier.keys() == []

    def test_memory_usage(self, tier: LocalTier) -> None:
        """memory_usage() approximates the serialized size of values."""
        assert tier.memory_usage() == 0

        tier.set("k", CacheEntry.create({"a": 1}))

        assert tier.memory_usage() == len('{"a": 1}')


class TestLocalTierSweep:
    """Test suite for the periodic sweep task."""

    async def test_sweep_removes_expired_entries(self) -> None:
        """The sweep purges expired entries without any read."""
        clock = FakeClock()
        tier = LocalTier(max_keys=10, default_ttl=1, check_period=0.01, clock=clock)
        tier.set("k", CacheEntry.create("v"))
        clock.advance(5)

        tier.start()
        try:
            for _ in range(100):
                if tier.expirations:
                    break
                await asyncio.sleep(0.01)
        finally:
            await tier.stop()

        assert tier.expirations == 1
        assert len(tier) == 0

    async def test_start_stop_lifecycle(self) -> None:
        """start() is idempotent and stop() leaves no running task."""
        tier = LocalTier(check_period=60)

        tier.start()
        tier.start()
        assert tier.running is True

        await tier.stop()
        assert tier.running is False

        # Stopping twice is harmless
        await tier.stop()

    async def test_zero_check_period_disables_sweep(self) -> None:
        """check_period=0 never starts a task."""
        tier = LocalTier(check_period=0)
        tier.start()
        assert tier.running is False
