"""
TierCache - Cache Manager Factory

Canonical way to build cache managers from settings.

Key points:
- Named registry: one CacheManager per name, reused on subsequent calls
- The Redis client is created here when L2 is enabled and none is supplied;
  managers created this way close their client on close_all_cache_managers()
- All configuration is typed and validated via Pydantic models

Examples:
    from tiercache.cache.factory import create_cache_manager

    # Uses env-configured settings
    cache = create_cache_manager()

    # Or a preset with an explicit client (e.g. for tests)
    from tiercache.config import CachePreset, preset_config
    cache = create_cache_manager(preset_config(CachePreset.SESSIONS), name="sessions", remote=client)
"""

from __future__ import annotations

import logging

from ..config import CacheConfig, TierCacheSettings, get_settings
from ..errors import ConfigurationError
from .manager import CacheManager
from .remote import RemoteStore, create_redis_client

logger = logging.getLogger(__name__)

# Global cache manager registry
_managers: dict[str, CacheManager] = {}
# Managers whose remote client was created (and is owned) by this factory
_owned_clients: set[str] = set()


def create_cache_manager(
    config: CacheConfig | None = None,
    name: str = "default",
    remote: RemoteStore | None = None,
    settings: TierCacheSettings | None = None,
) -> CacheManager:
    """
    Create (or return the existing) cache manager registered under a name.

    Args:
        config: Tier configuration (uses settings.cache if not provided)
        name: Registry name
        remote: Remote client to use instead of building one from settings.redis
        settings: Runtime settings (uses the global settings if not provided)

    Returns:
        Configured CacheManager (background tasks not started)

    Raises:
        ConfigurationError: If the configuration is invalid or the L2 client cannot be built
    """
    if name in _managers:
        logger.debug("Returning existing cache manager: %s", name)
        return _managers[name]

    settings = settings or get_settings()
    config = config or settings.cache

    logger.info(
        "Creating cache manager '%s'",
        name,
        extra={"cache_name": name, "l1_enabled": config.l1.enabled, "l2_enabled": config.l2.enabled},
    )

    owns_client = False
    try:
        if config.l2.enabled and remote is None:
            remote = create_redis_client(settings.redis)
            owns_client = True

        manager = CacheManager(
            remote=remote,
            config=config,
            stats_interval=settings.stats_interval_seconds,
        )
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error creating cache manager '%s': %s",
            name,
            e,
            extra={"cache_name": name, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create cache manager '{name}': {e}",
            details={"cache_name": name, "error": str(e)},
        ) from e

    _managers[name] = manager
    if owns_client:
        _owned_clients.add(name)

    logger.info("Cache manager '%s' created successfully", name, extra={"cache_name": name})
    return manager


def get_cache_manager(name: str = "default") -> CacheManager:
    """
    Get a cache manager by name, creating it from global settings if needed.

    Args:
        name: Registry name

    Returns:
        CacheManager instance
    """
    if name not in _managers:
        logger.debug("Cache manager '%s' not found, creating new instance", name)
        return create_cache_manager(name=name)

    return _managers[name]


async def close_all_cache_managers() -> None:
    """
    Destroy every registered manager and release factory-owned clients.

    Must be called during graceful shutdown so no background task outlives
    the event loop.
    """
    if not _managers:
        logger.debug("No cache managers to close")
        return

    logger.info("Closing %d cache manager(s)...", len(_managers))

    for name, manager in list(_managers.items()):
        try:
            await manager.destroy(close_remote=name in _owned_clients)
            logger.info("Closed cache manager: %s", name)
        except Exception as e:
            logger.error(
                "Error closing cache manager '%s': %s",
                name,
                e,
                extra={"cache_name": name, "error": str(e)},
                exc_info=True,
            )

    _managers.clear()
    _owned_clients.clear()
    logger.info("All cache managers closed")


def reset_cache_factory() -> None:
    """
    Forget every registered manager without destroying it.

    Warning: Only use this in testing contexts; use close_all_cache_managers() for cleanup.
    """
    count = len(_managers)
    _managers.clear()
    _owned_clients.clear()
    logger.debug("Reset cache factory, cleared %d manager reference(s)", count)


def list_cache_managers() -> list[str]:
    """
    List all registered cache manager names.

    Returns:
        List of registry names
    """
    return list(_managers.keys())
