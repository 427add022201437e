"""
TierCache - Core Error Types

Defines the exception hierarchy for the cache manager.
All exceptions inherit from TierCacheError for consistent error handling.

Only configuration errors ever reach callers of the cache manager. Tier
errors (CacheError and subclasses) are raised by the L1/L2 adapters and
converted into tier misses by the orchestrator.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes attached to structured error details."""

    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"
    CACHE_FAILURE = "CACHE_FAILURE"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
    SERIALIZATION_FAILED = "SERIALIZATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TierCacheError(Exception):
    """Base exception for all TierCache errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logs and health payloads."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TierCacheError):
    """Raised when configuration is invalid or missing."""

    code = ErrorCode.CONFIGURATION_INVALID


class CacheError(TierCacheError):
    """Base exception for tier-level cache errors."""

    code = ErrorCode.CACHE_FAILURE


class CacheConnectionError(CacheError):
    """Raised when the remote store cannot be reached or a command fails."""

    code = ErrorCode.CACHE_UNAVAILABLE

    def __init__(self, operation: str, details: dict[str, Any] | None = None):
        message = f"Remote cache operation failed: {operation}"
        super().__init__(message, details)
        self.operation = operation


class SerializationError(CacheError):
    """Raised when a cache envelope cannot be encoded or decoded."""

    code = ErrorCode.SERIALIZATION_FAILED

