"""
TierCache - Cache Entry Model

The unit of storage in every tier: the cached value plus metadata used for
access statistics and version-based invalidation.

Field aliases match the wire envelope stored in the remote tier:
    {"data": ..., "metadata": {"createdAt", "accessCount", "lastAccessed",
                               "version", "compressed"?}}
"""

import time
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

DEFAULT_VERSION = "1.0"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class EntryMetadata(BaseModel):
    """Bookkeeping stored alongside every cached value."""

    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    access_count: int = Field(default=0, ge=0, alias="accessCount")
    last_accessed: int = Field(default_factory=now_ms, alias="lastAccessed")
    version: str = DEFAULT_VERSION
    compressed: bool | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Metadata as stored in the remote envelope (camelCase, no unset flags)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CacheEntry(BaseModel, Generic[T]):
    """A cached value and its metadata."""

    data: T
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)

    @classmethod
    def create(cls, data: T, version: str = DEFAULT_VERSION) -> "CacheEntry[T]":
        """Build a fresh entry stamped with the current time."""
        created = now_ms()
        return cls(
            data=data,
            metadata=EntryMetadata(created_at=created, last_accessed=created, version=version),
        )

    def touch(self) -> None:
        """Record a read: bump the access count and last-access time in place."""
        self.metadata.access_count += 1
        self.metadata.last_accessed = now_ms()

    @property
    def version(self) -> str:
        return self.metadata.version
