"""
TierCache - Cache Manager

Composes the local (L1) and remote (L2) tiers behind a single API.

Read path:
    get → L1 hit ✓
            ↓ miss
          L2 hit → version check → promote to L1 ✓
            ↓ miss / stale / error
          fallback loader → set() into both tiers

Write path:
    set → L1 and L2, each in its own error boundary (best-effort)

Failure policy: tier errors are logged and treated as misses; callers only
ever see a value, None, or an exception raised by their own loader.

Concurrent misses for the same key are not coalesced: each caller runs its
own loader and the last write wins.

Usage:
    async with CacheManager(redis_client, config) as cache:
        profile = await cache.get("profiles", "u1", fallback=load_profile)
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from ..config import CacheConfig
from ..errors import CacheError, ConfigurationError
from .codec import EntryCodec
from .entry import DEFAULT_VERSION, CacheEntry
from .health import HealthReport, HealthStatus, TierHealth, overall_status
from .keys import build_key, namespace_pattern, namespace_prefix
from .local import LocalTier
from .remote import RemoteStore, RemoteTier
from .stats import CacheStats, LocalTierStats, RemoteTierStats, StatsCollector, TierCounters, compute_hit_ratio

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], T | None | Awaitable[T | None]]
WarmUpItem = tuple[str, Any] | Mapping[str, Any]
WarmUpLoader = Callable[[], Iterable[WarmUpItem] | Awaitable[Iterable[WarmUpItem]]]


@dataclass(frozen=True)
class GetOptions:
    """
    Per-call options for CacheManager.get().

    Attributes:
        skip_l1: Bypass the local tier for this lookup
        skip_l2: Bypass the remote tier for this lookup
        ttl: TTL used when a loader result is written back (None = tier defaults)
        version: Expected entry version; a different stored version is treated as stale
    """

    skip_l1: bool = False
    skip_l2: bool = False
    ttl: int | None = None
    version: str | None = None


async def _resolve(value: Any) -> Any:
    """Await a value if a sync-or-async callable handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def _warm_item(item: WarmUpItem) -> tuple[str, Any]:
    if isinstance(item, Mapping):
        return item["key"], item["data"]
    key, data = item
    return key, data


class CacheManager:
    """
    Two-tier cache orchestrator.

    The manager owns its L1 tier and background tasks. The remote client is
    borrowed: destroy() only closes it when asked to.
    """

    def __init__(
        self,
        remote: RemoteStore | RemoteTier | None = None,
        config: CacheConfig | None = None,
        *,
        stats_interval: float = 30.0,
        codec: EntryCodec | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache manager.

        Args:
            remote: Remote client (redis.asyncio.Redis or compatible) or a ready RemoteTier
            config: Tier configuration (defaults when omitted)
            stats_interval: Background stats refresh period in seconds (0 = off)
            codec: Envelope codec for the remote tier (ignored when a RemoteTier is given)
            clock: Monotonic time source for L1 expiry, injectable for tests

        Raises:
            ConfigurationError: If L2 is enabled without a remote client
        """
        self.config = config or CacheConfig()

        if self.config.l2.enabled and remote is None:
            raise ConfigurationError(
                "A remote client is required when the L2 tier is enabled",
                details={"tier": "l2", "key_prefix": self.config.l2.key_prefix},
            )

        self.local = LocalTier(
            max_keys=self.config.l1.max_keys,
            default_ttl=self.config.l1.ttl_seconds,
            check_period=self.config.l1.check_period,
            clock=clock,
        )

        self.remote: RemoteTier | None
        if remote is None or isinstance(remote, RemoteTier):
            self.remote = remote
        else:
            self.remote = RemoteTier(remote, compression=self.config.l2.compression, codec=codec)

        self._l1 = TierCounters()
        self._l2 = TierCounters()
        self._collector = StatsCollector(
            snapshot=self._snapshot,
            count_remote_keys=self._count_remote_keys if self._l2_active else None,
            interval=stats_interval,
        )

    @property
    def _l1_active(self) -> bool:
        return self.config.l1.enabled

    @property
    def _l2_active(self) -> bool:
        return self.config.l2.enabled and self.remote is not None

    def _key(self, namespace: str, key: str) -> str:
        return build_key(self.config.l2.key_prefix, namespace, key)

    # ------------ Read path ------------

    async def get(
        self,
        namespace: str,
        key: str,
        fallback: Loader[T] | None = None,
        options: GetOptions | None = None,
    ) -> T | None:
        """
        Read a value through L1, then L2, then the fallback loader.

        Args:
            namespace: Logical group of keys (used by clear())
            key: Key within the namespace
            fallback: Sync or async loader invoked when every tier misses
            options: Per-call tier skipping, write-back TTL and expected version

        Returns:
            The cached or loaded value, or None

        Raises:
            Exception: Whatever the fallback loader raises, unchanged
        """
        opts = options or GetOptions()
        cache_key = self._key(namespace, key)
        start = time.perf_counter()

        if self._l1_active and not opts.skip_l1:
            entry = self.local.get(cache_key)
            if entry is not None:
                self._l1.hits += 1
                logger.debug(
                    "Cache hit L1",
                    extra={
                        "namespace": namespace,
                        "key": key,
                        "response_time_ms": round((time.perf_counter() - start) * 1000, 3),
                    },
                )
                return entry.data  # type: ignore[no-any-return]
            self._l1.misses += 1

        if self._l2_active and not opts.skip_l2:
            entry = await self._get_remote(namespace, key, cache_key, opts.version)
            if entry is not None:
                logger.debug(
                    "Cache hit L2",
                    extra={
                        "namespace": namespace,
                        "key": key,
                        "response_time_ms": round((time.perf_counter() - start) * 1000, 3),
                        "promoted": self._l1_active,
                    },
                )
                return entry.data  # type: ignore[no-any-return]

        if fallback is None:
            return None

        logger.debug(
            "Cache miss, executing fallback",
            extra={
                "namespace": namespace,
                "key": key,
                "response_time_ms": round((time.perf_counter() - start) * 1000, 3),
            },
        )
        data = await _resolve(fallback())
        if data is not None:
            await self.set(namespace, key, data, opts.ttl, opts.version or DEFAULT_VERSION)
        return data  # type: ignore[no-any-return]

    async def _get_remote(
        self,
        namespace: str,
        key: str,
        cache_key: str,
        version: str | None,
    ) -> CacheEntry[Any] | None:
        """L2 lookup with version check and promotion. Never raises."""
        assert self.remote is not None

        try:
            entry = await self.remote.get(cache_key)
        except CacheError as e:
            self._l2.errors += 1
            self._l2.misses += 1
            logger.error(
                f"L2 get failed for '{cache_key}', treating as miss: {e}",
                extra={"namespace": namespace, "key": key, **e.details},
            )
            return None
        except Exception as e:
            self._l2.errors += 1
            self._l2.misses += 1
            logger.error(
                f"Unexpected error reading '{cache_key}' from L2: {e}",
                extra={"namespace": namespace, "key": key, "error": str(e)},
                exc_info=True,
            )
            return None

        if entry is None:
            self._l2.misses += 1
            return None

        if version is not None and entry.version != version:
            logger.info(
                "Stale L2 entry, invalidating",
                extra={
                    "namespace": namespace,
                    "key": key,
                    "stored_version": entry.version,
                    "expected_version": version,
                },
            )
            await self.delete(namespace, key)
            self._l2.misses += 1
            return None

        self._l2.hits += 1

        if self._l1_active:
            # L1 holds plain entries; the compressed flag only describes L2 payloads
            entry.metadata.compressed = None
            self.local.set(cache_key, entry, self.config.l1.ttl_seconds)
            self._l2.promotions += 1

        return entry

    # ------------ Write path ------------

    async def set(
        self,
        namespace: str,
        key: str,
        data: T,
        ttl: int | None = None,
        version: str = DEFAULT_VERSION,
    ) -> None:
        """
        Write a value to every enabled tier. Best-effort: never raises.

        Args:
            namespace: Logical group of keys
            key: Key within the namespace
            data: JSON-serializable value
            ttl: TTL in seconds for both tiers (None = each tier's default, 0 = no expiry)
            version: Logical version stored with the entry
        """
        cache_key = self._key(namespace, key)
        entry = CacheEntry.create(data, version=version)

        if self._l1_active:
            try:
                self.local.set(cache_key, entry, ttl if ttl is not None else self.config.l1.ttl_seconds)
            except Exception as e:
                logger.error(
                    f"L1 set failed for '{cache_key}': {e}",
                    extra={"namespace": namespace, "key": key, "error": str(e)},
                    exc_info=True,
                )

        if self._l2_active:
            assert self.remote is not None
            l2_ttl = ttl if ttl is not None else self.config.l2.ttl_seconds
            try:
                await self.remote.set_with_expiry(cache_key, l2_ttl, entry)
            except CacheError as e:
                self._l2.errors += 1
                logger.error(
                    f"L2 set failed for '{cache_key}': {e}",
                    extra={"namespace": namespace, "key": key, "ttl": l2_ttl, **e.details},
                )
            except Exception as e:
                self._l2.errors += 1
                logger.error(
                    f"Unexpected error writing '{cache_key}' to L2: {e}",
                    extra={"namespace": namespace, "key": key, "ttl": l2_ttl, "error": str(e)},
                    exc_info=True,
                )

        logger.debug("Cache set", extra={"namespace": namespace, "key": key, "version": version, "ttl": ttl})

    async def delete(self, namespace: str, key: str) -> bool:
        """
        Remove a key from every tier.

        Returns:
            True if any tier held the key
        """
        cache_key = self._key(namespace, key)
        removed = self.local.delete(cache_key)

        if self._l2_active:
            assert self.remote is not None
            try:
                removed = await self.remote.delete(cache_key) or removed
            except Exception as e:
                self._l2.errors += 1
                logger.error(
                    f"L2 delete failed for '{cache_key}': {e}",
                    extra={"namespace": namespace, "key": key, "error": str(e)},
                )

        logger.debug("Cache deleted", extra={"namespace": namespace, "key": key, "removed": removed})
        return removed

    async def clear(self, namespace: str) -> int:
        """
        Remove every key in a namespace from every tier.

        Returns:
            Number of keys removed across tiers
        """
        prefix = namespace_prefix(self.config.l2.key_prefix, namespace)

        l1_removed = 0
        for cache_key in self.local.keys():
            if cache_key.startswith(prefix) and self.local.delete(cache_key):
                l1_removed += 1

        l2_removed = 0
        if self._l2_active:
            assert self.remote is not None
            pattern = namespace_pattern(self.config.l2.key_prefix, namespace)
            try:
                keys = await self.remote.keys_matching(pattern)
                l2_removed = await self.remote.delete_many(keys)
            except Exception as e:
                self._l2.errors += 1
                logger.error(
                    f"L2 clear failed for namespace '{namespace}': {e}",
                    extra={"namespace": namespace, "pattern": pattern, "error": str(e)},
                )

        logger.info(
            f"Cache cleared for namespace '{namespace}'",
            extra={"namespace": namespace, "l1_keys_cleared": l1_removed, "l2_keys_cleared": l2_removed},
        )
        return l1_removed + l2_removed

    async def warm_up(
        self,
        namespace: str,
        loader: WarmUpLoader,
        ttl: int | None = None,
        version: str = DEFAULT_VERSION,
    ) -> int:
        """
        Preload a namespace from a bulk loader.

        The loader is called once and returns ``(key, data)`` pairs or
        ``{"key": ..., "data": ...}`` mappings, which are written in order.
        A failure stops the warm-up; it is logged, not raised.

        Returns:
            Number of items written before completion or failure
        """
        logger.info(f"Starting cache warm-up for namespace '{namespace}'", extra={"namespace": namespace})

        warmed = 0
        try:
            items = await _resolve(loader())
            for item in items:
                key, data = _warm_item(item)
                await self.set(namespace, key, data, ttl, version)
                warmed += 1
        except Exception as e:
            logger.error(
                f"Cache warm-up failed for namespace '{namespace}': {e}",
                extra={"namespace": namespace, "items_warmed": warmed, "error": str(e)},
                exc_info=True,
            )
            return warmed

        logger.info(
            f"Cache warm-up completed for namespace '{namespace}'",
            extra={"namespace": namespace, "items_warmed": warmed},
        )
        return warmed

    # ------------ Stats & health ------------

    def _snapshot(self) -> CacheStats:
        hits = self._l1.hits + self._l2.hits
        misses = self._l1.misses + self._l2.misses
        return CacheStats(
            l1=LocalTierStats(
                hits=self._l1.hits,
                misses=self._l1.misses,
                keys=len(self.local.keys()),
                memory_usage=self.local.memory_usage(),
                evictions=self.local.evictions,
                expirations=self.local.expirations,
            ),
            l2=RemoteTierStats(
                hits=self._l2.hits,
                misses=self._l2.misses,
                keys=self._collector.remote_keys,
                errors=self._l2.errors,
                promotions=self._l2.promotions,
            ),
            total_requests=hits + misses,
            hit_ratio=compute_hit_ratio(hits, misses),
        )

    async def _count_remote_keys(self) -> int:
        assert self.remote is not None
        return len(await self.remote.keys_matching(f"{self.config.l2.key_prefix}*"))

    def get_stats(self) -> CacheStats:
        """Current statistics, recomputed from raw counters on every call."""
        return self._snapshot()

    def reset_stats(self) -> None:
        """Zero the hit/miss counters of both tiers."""
        self._l1.reset()
        self._l2.reset()

    async def refresh_stats(self) -> CacheStats:
        """Recount remote keys now and return a fresh snapshot."""
        return await self._collector.refresh()

    async def get_health(self) -> HealthReport:
        """
        Report per-tier and overall health.

        L1 is healthy whenever enabled; L2 is healthy iff PING succeeds.
        """
        if self._l1_active:
            l1 = TierHealth(
                status=HealthStatus.HEALTHY,
                details={"keys": len(self.local.keys()), "memory_usage": self.local.memory_usage()},
            )
        else:
            l1 = TierHealth(status=HealthStatus.DISABLED)

        if self._l2_active:
            assert self.remote is not None
            alive = await self.remote.ping()
            l2 = TierHealth(
                status=HealthStatus.HEALTHY if alive else HealthStatus.UNHEALTHY,
                details={"ping": "PONG" if alive else None, "key_prefix": self.config.l2.key_prefix},
            )
        else:
            l2 = TierHealth(status=HealthStatus.DISABLED)

        return HealthReport(status=overall_status(l1.status, l2.status), l1=l1, l2=l2)

    # ------------ Lifecycle ------------

    async def cleanup(self) -> int:
        """
        Purge expired L1 entries now and refresh derived stats.

        Returns:
            Number of expired entries removed
        """
        purged = self.local.purge_expired()
        await self._collector.refresh()
        logger.info("Cache cleanup completed", extra={"expired_removed": purged})
        return purged

    @property
    def running(self) -> bool:
        return self.local.running or self._collector.running

    def start(self) -> None:
        """Start the L1 sweep and stats collection tasks on the running loop."""
        if self._l1_active:
            self.local.start()
        self._collector.start()
        logger.info("Cache manager started", extra={"l1_enabled": self._l1_active, "l2_enabled": self._l2_active})

    async def stop(self) -> None:
        """Cancel background tasks. Cached data is kept."""
        await self.local.stop()
        await self._collector.stop()

    async def destroy(self, close_remote: bool = False) -> None:
        """
        Shut down: stop background tasks and flush L1.

        Args:
            close_remote: Also close the remote client
        """
        await self.stop()
        flushed = self.local.flush_all()
        if close_remote and self.remote is not None:
            await self.remote.close()
        logger.info("Cache manager destroyed", extra={"l1_keys_flushed": flushed})

    async def __aenter__(self) -> CacheManager:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()
