"""
TierCache - Cache Module

Two-tier cache: an in-process L1 in front of a shared L2 network store.

Usage:
    from tiercache.cache import CacheManager, GetOptions

    cache = CacheManager(redis_client)
    await cache.set("profiles", "u1", {"name": "Ann"}, ttl=60)
    profile = await cache.get("profiles", "u1", fallback=load_profile)
"""

from .codec import EntryCodec
from .entry import DEFAULT_VERSION, CacheEntry, EntryMetadata
from .factory import (
    close_all_cache_managers,
    create_cache_manager,
    get_cache_manager,
    list_cache_managers,
    reset_cache_factory,
)
from .health import HealthReport, HealthStatus, TierHealth
from .keys import build_key, namespace_pattern, namespace_prefix
from .local import LocalTier
from .manager import CacheManager, GetOptions
from .remote import RemoteStore, RemoteTier, create_redis_client
from .stats import CacheStats, LocalTierStats, RemoteTierStats, StatsCollector

__all__ = [
    # Orchestrator
    "CacheManager",
    "GetOptions",
    # Factory functions
    "create_cache_manager",
    "get_cache_manager",
    "close_all_cache_managers",
    "list_cache_managers",
    "reset_cache_factory",
    # Tiers
    "LocalTier",
    "RemoteTier",
    "RemoteStore",
    "create_redis_client",
    # Entries and encoding
    "CacheEntry",
    "EntryMetadata",
    "EntryCodec",
    "DEFAULT_VERSION",
    # Keys
    "build_key",
    "namespace_prefix",
    "namespace_pattern",
    # Stats and health
    "CacheStats",
    "LocalTierStats",
    "RemoteTierStats",
    "StatsCollector",
    "HealthReport",
    "HealthStatus",
    "TierHealth",
]
