"""
TierCache - Configuration Loader

Loads and validates settings from environment variables and .env files.
Provides a singleton settings instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .presets import preset_config
from .schemas import (
    CacheConfig,
    CacheConfigOverrides,
    LocalTierOverrides,
    PersistentTierOverrides,
    RemoteTierOverrides,
    TierCacheSettings,
    resolve_config,
)

logger = logging.getLogger(__name__)

_settings_instance: TierCacheSettings | None = None


def _env_bool(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return int(value)


def _cache_config_from_env(redis_url: str | None) -> CacheConfig:
    """Resolve the cache config: preset (if any), then per-field env overrides."""
    preset = os.getenv("CACHE_PRESET")
    base = preset_config(preset) if preset else CacheConfig()

    l2_enabled = _env_bool("CACHE_L2_ENABLED")
    if l2_enabled is None:
        # Auto-detect: remote tier only when a Redis URL is available
        l2_enabled = bool(redis_url)

    overrides = CacheConfigOverrides(
        l1=LocalTierOverrides(
            enabled=_env_bool("CACHE_L1_ENABLED"),
            ttl_seconds=_env_int("CACHE_L1_TTL_SECONDS"),
            max_keys=_env_int("CACHE_L1_MAX_KEYS"),
            check_period=_env_int("CACHE_L1_CHECK_PERIOD"),
        ),
        l2=RemoteTierOverrides(
            enabled=l2_enabled,
            ttl_seconds=_env_int("CACHE_L2_TTL_SECONDS"),
            compression=_env_bool("CACHE_L2_COMPRESSION"),
            key_prefix=os.getenv("CACHE_L2_KEY_PREFIX") or None,
        ),
        l3=PersistentTierOverrides(
            enabled=_env_bool("CACHE_L3_ENABLED"),
            ttl_seconds=_env_int("CACHE_L3_TTL_SECONDS"),
        ),
    )
    return resolve_config(overrides, base=base)


def load_settings(
    env_file: str | None = None,
    reload: bool = False,
) -> TierCacheSettings:
    """
    Load settings from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in working directory)
        reload: Force reload even if settings already loaded

    Returns:
        Validated TierCacheSettings instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _settings_instance

    if _settings_instance is not None and not reload:
        return _settings_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    redis_url = os.getenv("REDIS_URL")

    try:
        settings_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "log_format": os.getenv("LOG_FORMAT", "json"),
            "stats_interval_seconds": float(os.getenv("CACHE_STATS_INTERVAL", "30")),
            "redis": {
                "url": redis_url,
                "max_connections": int(os.getenv("REDIS_MAX_CONNECTIONS", "10")),
                "socket_timeout": float(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
            },
            "cache": _cache_config_from_env(redis_url),
        }
        _settings_instance = TierCacheSettings(**settings_dict)  # type: ignore[arg-type]
    except ConfigurationError:
        raise
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors()},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e
    except ValueError as e:
        # Malformed numbers or an unknown CACHE_PRESET
        logger.error(f"Invalid configuration value: {e}", extra={"error": str(e)})
        raise ConfigurationError(
            f"Invalid configuration value: {e}",
            details={"error": str(e)},
        ) from e

    logger.info(
        f"Configuration loaded successfully (environment: {_settings_instance.environment})",
        extra={
            "environment": _settings_instance.environment,
            "l1_enabled": _settings_instance.cache.l1.enabled,
            "l2_enabled": _settings_instance.cache.l2.enabled,
        },
    )
    return _settings_instance


def get_settings() -> TierCacheSettings:
    """
    Get the current settings instance, loading it on first access.

    Returns:
        Current TierCacheSettings instance
    """
    if _settings_instance is None:
        return load_settings()

    return _settings_instance


def reload_settings(env_file: str | None = None) -> TierCacheSettings:
    """
    Force reload settings.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded TierCacheSettings instance
    """
    return load_settings(env_file=env_file, reload=True)


def reset_settings() -> None:
    """Drop the cached settings instance. Used by tests."""
    global _settings_instance
    _settings_instance = None
