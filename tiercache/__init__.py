"""
TierCache - Multi-layer cache manager

An in-process L1 tier backed by a shared L2 network tier (Redis), with
promotion, version-based invalidation and graceful degradation.
"""

from .cache import CacheManager, GetOptions, create_cache_manager, get_cache_manager
from .config import CacheConfig, CachePreset, preset_config, resolve_config
from .errors import CacheError, ConfigurationError, TierCacheError

__version__ = "0.1.0"

__all__ = [
    "CacheManager",
    "GetOptions",
    "create_cache_manager",
    "get_cache_manager",
    "CacheConfig",
    "CachePreset",
    "preset_config",
    "resolve_config",
    "TierCacheError",
    "ConfigurationError",
    "CacheError",
]
