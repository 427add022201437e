"""
TierCache - Observability Module

Structured logging setup for the runtime.

Usage:
    from tiercache.observability import setup_logging

    setup_logging(level="DEBUG", json_format=True)
"""

from .monitoring import JSONFormatter, setup_logging, setup_logging_from_settings

__all__ = [
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_settings",
]
