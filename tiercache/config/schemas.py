"""
TierCache - Configuration Schemas

Typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated at construction time.

Tier configs are immutable once built; partial configuration is expressed
with the *Overrides models and resolved against defaults by
``resolve_config`` (see presets.py).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class LocalTierConfig(BaseModel):
    """L1 (in-process) tier configuration."""

    enabled: bool = Field(default=True, description="Enable the in-process tier")
    ttl_seconds: int = Field(default=300, ge=0, description="Default TTL in seconds (0 = no expiry)")
    max_keys: int = Field(default=10000, ge=1, description="Max entries before LRU eviction")
    check_period: int = Field(default=120, ge=0, description="Expired-key sweep interval in seconds (0 = no sweep)")

    model_config = ConfigDict(frozen=True)


class RemoteTierConfig(BaseModel):
    """L2 (network) tier configuration."""

    enabled: bool = Field(default=True, description="Enable the remote tier")
    ttl_seconds: int = Field(default=3600, ge=0, description="Default TTL in seconds (0 = no expiry)")
    compression: bool = Field(default=True, description="Gzip the data field of stored envelopes")
    key_prefix: str = Field(default="cache:", description="Prefix for every fully-qualified key")

    model_config = ConfigDict(frozen=True)


class PersistentTierConfig(BaseModel):
    """L3 tier configuration. Reserved; no L3 tier is ever constructed."""

    enabled: bool = Field(default=False, description="Reserved for a future persistent tier")
    ttl_seconds: int = Field(default=86400, ge=0, description="Reserved TTL in seconds")

    model_config = ConfigDict(frozen=True)


class CacheConfig(BaseModel):
    """Per-tier cache configuration."""

    l1: LocalTierConfig = Field(default_factory=LocalTierConfig)
    l2: RemoteTierConfig = Field(default_factory=RemoteTierConfig)
    l3: PersistentTierConfig = Field(default_factory=PersistentTierConfig)

    model_config = ConfigDict(frozen=True)


class LocalTierOverrides(BaseModel):
    """Partial L1 settings; unset fields fall back to the base config."""

    enabled: bool | None = None
    ttl_seconds: int | None = None
    max_keys: int | None = None
    check_period: int | None = None


class RemoteTierOverrides(BaseModel):
    """Partial L2 settings; unset fields fall back to the base config."""

    enabled: bool | None = None
    ttl_seconds: int | None = None
    compression: bool | None = None
    key_prefix: str | None = None


class PersistentTierOverrides(BaseModel):
    """Partial L3 settings; unset fields fall back to the base config."""

    enabled: bool | None = None
    ttl_seconds: int | None = None


class CacheConfigOverrides(BaseModel):
    """Partial cache configuration, merged onto defaults by resolve_config()."""

    l1: LocalTierOverrides = Field(default_factory=LocalTierOverrides)
    l2: RemoteTierOverrides = Field(default_factory=RemoteTierOverrides)
    l3: PersistentTierOverrides = Field(default_factory=PersistentTierOverrides)


def _merge_tier(base: BaseModel, overrides: BaseModel) -> dict[str, Any]:
    """Overlay the fields an override model actually sets onto a base model."""
    merged = base.model_dump()
    merged.update(overrides.model_dump(exclude_none=True))
    return merged


def resolve_config(
    overrides: CacheConfigOverrides | None = None,
    base: CacheConfig | None = None,
) -> CacheConfig:
    """
    Resolve partial overrides against a base configuration.

    Args:
        overrides: Fields to change (None fields keep the base value)
        base: Configuration to start from (defaults when omitted)

    Returns:
        Fully validated CacheConfig

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    base = base or CacheConfig()
    if overrides is None:
        return base

    try:
        return CacheConfig(
            l1=LocalTierConfig(**_merge_tier(base.l1, overrides.l1)),
            l2=RemoteTierConfig(**_merge_tier(base.l2, overrides.l2)),
            l3=PersistentTierConfig(**_merge_tier(base.l3, overrides.l3)),
        )
    except ValidationError as e:
        raise ConfigurationError(
            "Cache configuration validation failed",
            details={"validation_errors": e.errors()},
        ) from e


class RedisConfig(BaseModel):
    """Connection settings for the default Redis-backed remote tier."""

    url: str | None = Field(default=None, description="Redis connection URL")
    max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    socket_timeout: float = Field(default=5.0, gt=0, description="Redis socket timeout in seconds")


class TierCacheSettings(BaseModel):
    """Root runtime settings for TierCache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")
    stats_interval_seconds: float = Field(default=30.0, ge=0, description="Stats refresh interval (0 = off)")

    redis: RedisConfig = Field(default_factory=RedisConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("cache")
    @classmethod
    def validate_remote_tier(cls, v: CacheConfig, info: Any) -> CacheConfig:
        """Ensure a Redis URL is configured whenever the remote tier is enabled."""
        redis = info.data.get("redis")
        if v.l2.enabled and (redis is None or not redis.url):
            raise ValueError("redis.url is required when the L2 tier is enabled")
        return v

    model_config = ConfigDict(use_enum_values=True)
