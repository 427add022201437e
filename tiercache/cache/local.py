"""
TierCache - Local Tier (L1)

In-memory tier with LRU eviction and per-key TTL.

Features:
- Synchronous, non-blocking operations (never suspends the caller)
- LRU eviction when max_keys is reached
- Passive expiry on read plus a periodic sweep task owned via start()/stop()
- Entries are stored by reference, so access stats update in place
"""

import asyncio
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from .entry import CacheEntry

logger = logging.getLogger(__name__)


class LocalTier:
    """
    Bounded in-process cache of CacheEntry objects.

    Capacity policy: when a new key is inserted at capacity, the least
    recently used key (oldest insertion, refreshed by hits and re-sets) is
    evicted.
    """

    def __init__(
        self,
        max_keys: int = 10000,
        default_ttl: int = 300,
        check_period: float = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the local tier.

        Args:
            max_keys: Maximum number of entries (LRU eviction when exceeded)
            default_ttl: Default TTL in seconds (0 = no expiry)
            check_period: Sweep interval in seconds for start() (0 = no sweep)
            clock: Monotonic time source in seconds, injectable for tests
        """
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")

        self.max_keys = max_keys
        self.default_ttl = default_ttl
        self.check_period = check_period
        self._clock = clock

        # key -> (entry, expiry_time)
        self._store: OrderedDict[str, tuple[CacheEntry[Any], float | None]] = OrderedDict()
        self._lock = threading.RLock()
        self._sweep_task: asyncio.Task[None] | None = None

        # Stats
        self.sets = 0
        self.deletes = 0
        self.evictions = 0
        self.expirations = 0

    def _is_expired(self, expiry: float | None) -> bool:
        if expiry is None:
            return False
        return self._clock() >= expiry

    def get(self, key: str) -> CacheEntry[Any] | None:
        """Return the live entry for a key and record the access, or None."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None

            entry, expiry = item
            if self._is_expired(expiry):
                del self._store[key]
                self.expirations += 1
                logger.debug("L1 entry expired on read", extra={"key": key})
                return None

            self._store.move_to_end(key)
            entry.touch()
            return entry

    def set(self, key: str, entry: CacheEntry[Any], ttl: int | None = None) -> None:
        """Store an entry, evicting the least recently used key at capacity."""
        if ttl is None:
            ttl = self.default_ttl
        expiry = self._clock() + ttl if ttl > 0 else None

        with self._lock:
            if key not in self._store and len(self._store) >= self.max_keys:
                # Prefer dropping something already dead over a live LRU victim
                if not self._purge_expired_locked():
                    evicted_key, _ = self._store.popitem(last=False)
                    self.evictions += 1
                    logger.debug(f"Evicted key from L1: {evicted_key}")

            self._store[key] = (entry, expiry)
            self._store.move_to_end(key)
            self.sets += 1

    def delete(self, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""
        with self._lock:
            if key in self._store:
                del self._store[key]
                self.deletes += 1
                return True
            return False

    def keys(self) -> list[str]:
        """All live keys, oldest first."""
        with self._lock:
            self._purge_expired_locked()
            return list(self._store.keys())

    def flush_all(self) -> int:
        """Drop every entry. Returns the number removed."""
        with self._lock:
            size = len(self._store)
            self._store.clear()
            return size

    def purge_expired(self) -> int:
        """Remove every expired entry now. Returns the number removed."""
        with self._lock:
            return self._purge_expired_locked()

    def _purge_expired_locked(self) -> int:
        expired = [key for key, (_, expiry) in self._store.items() if self._is_expired(expiry)]
        for key in expired:
            del self._store[key]
        self.expirations += len(expired)
        if expired:
            logger.debug(f"Purged {len(expired)} expired L1 entries")
        return len(expired)

    def memory_usage(self) -> int:
        """Approximate size in bytes of the cached values, measured as JSON."""
        with self._lock:
            entries = [entry for entry, _ in self._store.values()]

        total = 0
        for entry in entries:
            try:
                total += len(json.dumps(entry.data, default=str))
            except (TypeError, ValueError):
                continue
        return total

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            item = self._store.get(key)  # type: ignore[call-overload]
            return item is not None and not self._is_expired(item[1])

    # ------------ Sweep lifecycle ------------

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic expired-key sweep on the running event loop."""
        if self.running or self.check_period <= 0:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop(), name="tiercache-l1-sweep")
        logger.debug("L1 sweep started", extra={"check_period": self.check_period})

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish. Safe to call twice."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("L1 sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_period)
            try:
                self.purge_expired()
            except Exception as e:
                logger.error(f"L1 sweep failed: {e}", exc_info=True)
