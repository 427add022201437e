"""
TierCache - Statistics

Raw per-tier counters, the derived CacheStats snapshot, and the background
collector that refreshes derived values (remote key count) periodically.

Everything here except the raw counters is recomputable from scratch; the
collector can be stopped, dropped and restarted without losing anything.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from ..errors import CacheError

logger = logging.getLogger(__name__)


def compute_hit_ratio(hits: int, misses: int) -> float:
    """Hit ratio as a percentage (0.0 when there were no requests)."""
    total = hits + misses
    return hits / total * 100 if total > 0 else 0.0


@dataclass
class TierCounters:
    """Raw, monotonically increasing counters for one tier."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    promotions: int = 0

    def reset(self) -> None:
        """Reset all counters."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.promotions = 0


class LocalTierStats(BaseModel):
    """L1 section of a stats snapshot."""

    hits: int = 0
    misses: int = 0
    keys: int = 0
    memory_usage: int = Field(default=0, description="Approximate bytes of cached values")
    evictions: int = 0
    expirations: int = 0


class RemoteTierStats(BaseModel):
    """L2 section of a stats snapshot."""

    hits: int = 0
    misses: int = 0
    keys: int = Field(default=0, description="Key count from the last background collection")
    errors: int = 0
    promotions: int = Field(default=0, description="Entries copied from L2 into L1")


class CacheStats(BaseModel):
    """Point-in-time statistics across both tiers."""

    l1: LocalTierStats = Field(default_factory=LocalTierStats)
    l2: RemoteTierStats = Field(default_factory=RemoteTierStats)
    total_requests: int = 0
    hit_ratio: float = 0.0
    collected_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def total_hits(self) -> int:
        return self.l1.hits + self.l2.hits

    @property
    def total_misses(self) -> int:
        return self.l1.misses + self.l2.misses


class StatsCollector:
    """
    Periodically refreshes derived statistics.

    Args:
        snapshot: Builds a CacheStats from the current raw counters
        count_remote_keys: Counts keys in the remote tier (None when L2 is off)
        interval: Refresh period in seconds for start() (0 = never)
    """

    def __init__(
        self,
        snapshot: Callable[[], CacheStats],
        count_remote_keys: Callable[[], Awaitable[int]] | None = None,
        interval: float = 30.0,
    ) -> None:
        self._snapshot = snapshot
        self._count_remote_keys = count_remote_keys
        self.interval = interval
        self.remote_keys = 0
        self.last_snapshot: CacheStats | None = None
        self._task: asyncio.Task[None] | None = None

    async def refresh(self) -> CacheStats:
        """Recount remote keys and take a fresh snapshot."""
        if self._count_remote_keys is not None:
            try:
                self.remote_keys = await self._count_remote_keys()
            except CacheError as e:
                logger.warning(
                    f"Failed to count L2 keys, keeping last value: {e}",
                    extra={"error": str(e), "remote_keys": self.remote_keys},
                )

        self.last_snapshot = self._snapshot()
        return self.last_snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the refresh loop on the running event loop."""
        if self.running or self.interval <= 0:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="tiercache-stats")
        logger.debug("Stats collection started", extra={"interval": self.interval})

    async def stop(self) -> None:
        """Cancel the refresh loop. Safe to call twice."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stats collection stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Stats refresh failed: {e}", exc_info=True)
