"""
TierCache - Configuration Presets

Named override bundles for common kinds of cached data. A preset only sets
the fields it cares about; everything else resolves to the defaults.

Usage:
    from tiercache.config import CachePreset, preset_config

    config = preset_config(CachePreset.SESSIONS)
"""

from enum import Enum

from .schemas import (
    CacheConfig,
    CacheConfigOverrides,
    LocalTierOverrides,
    PersistentTierOverrides,
    RemoteTierOverrides,
    resolve_config,
)


class CachePreset(str, Enum):
    """Named cache configuration presets."""

    USER_PROFILES = "user_profiles"
    EXTERNAL_API = "external_api"
    ANALYTICS = "analytics"
    GENERATED_CONTENT = "generated_content"
    SESSIONS = "sessions"


PRESETS: dict[CachePreset, CacheConfigOverrides] = {
    # Frequently read, slow to change
    CachePreset.USER_PROFILES: CacheConfigOverrides(
        l1=LocalTierOverrides(ttl_seconds=600, max_keys=5000),
        l2=RemoteTierOverrides(ttl_seconds=3600),
        l3=PersistentTierOverrides(ttl_seconds=86400),
    ),
    # Third-party API results, expensive to fetch
    CachePreset.EXTERNAL_API: CacheConfigOverrides(
        l1=LocalTierOverrides(ttl_seconds=300, max_keys=2000),
        l2=RemoteTierOverrides(ttl_seconds=1800, compression=True),
        l3=PersistentTierOverrides(ttl_seconds=7200),
    ),
    # Computed aggregates
    CachePreset.ANALYTICS: CacheConfigOverrides(
        l1=LocalTierOverrides(ttl_seconds=180, max_keys=3000),
        l2=RemoteTierOverrides(ttl_seconds=900, compression=True),
        l3=PersistentTierOverrides(ttl_seconds=3600),
    ),
    # Generated text/content, expensive to produce
    CachePreset.GENERATED_CONTENT: CacheConfigOverrides(
        l1=LocalTierOverrides(ttl_seconds=1800, max_keys=1000),
        l2=RemoteTierOverrides(ttl_seconds=7200, compression=True),
        l3=PersistentTierOverrides(ttl_seconds=86400),
    ),
    # Session data
    CachePreset.SESSIONS: CacheConfigOverrides(
        l1=LocalTierOverrides(ttl_seconds=900, max_keys=10000),
        l2=RemoteTierOverrides(ttl_seconds=3600),
        l3=PersistentTierOverrides(enabled=False),
    ),
}


def preset_config(preset: CachePreset | str, base: CacheConfig | None = None) -> CacheConfig:
    """
    Build a full CacheConfig from a named preset.

    Args:
        preset: Preset enum member or its string value (e.g. "sessions")
        base: Configuration the preset is applied on top of (defaults when omitted)

    Returns:
        Resolved CacheConfig

    Raises:
        ValueError: If the preset name is unknown
    """
    return resolve_config(PRESETS[CachePreset(preset)], base=base)
