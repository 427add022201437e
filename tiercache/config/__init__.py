"""
TierCache - Configuration Module

Provides typed configuration models, named presets and environment loading.
"""

from .loader import get_settings, load_settings, reload_settings, reset_settings
from .presets import PRESETS, CachePreset, preset_config
from .schemas import (
    CacheConfig,
    CacheConfigOverrides,
    Environment,
    LocalTierConfig,
    LocalTierOverrides,
    LogFormat,
    LogLevel,
    PersistentTierConfig,
    PersistentTierOverrides,
    RedisConfig,
    RemoteTierConfig,
    RemoteTierOverrides,
    TierCacheSettings,
    resolve_config,
)

__all__ = [
    # Loader functions
    "load_settings",
    "get_settings",
    "reload_settings",
    "reset_settings",
    # Root settings
    "TierCacheSettings",
    "RedisConfig",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Tier configs
    "CacheConfig",
    "LocalTierConfig",
    "RemoteTierConfig",
    "PersistentTierConfig",
    # Partial configs and merging
    "CacheConfigOverrides",
    "LocalTierOverrides",
    "RemoteTierOverrides",
    "PersistentTierOverrides",
    "resolve_config",
    # Presets
    "CachePreset",
    "PRESETS",
    "preset_config",
]
