"""
TierCache - Remote Tier (L2)

Thin adapter over an asynchronous key/value network client. Owns the entry
envelope (JSON, optional gzip of the data field) and the self-healing of
corrupt payloads. Any client with the RemoteStore shape works; the default
is redis-py's asyncio client.

Example:
    client = create_redis_client(RedisConfig(url="redis://localhost:6379/0"))
    tier = RemoteTier(client, compression=True)
    await tier.set_with_expiry("cache:users:42", 3600, entry)
    entry = await tier.get("cache:users:42")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable
from typing import Any, Protocol, runtime_checkable

from ..config import RedisConfig
from ..errors import CacheConnectionError, ConfigurationError, SerializationError
from .codec import EntryCodec
from .entry import CacheEntry

logger = logging.getLogger(__name__)

try:
    # redis-py asyncio client (v4.2+)
    from redis.asyncio import Redis
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis async client is required but not installed. "
        "Install with: pip install 'redis>=5.0.0' or add 'redis' to your dependencies."
    ) from e

SCAN_BATCH_SIZE = 1000
DELETE_CHUNK_SIZE = 1000


@runtime_checkable
class RemoteStore(Protocol):
    """The subset of the redis.asyncio.Redis API the remote tier relies on."""

    def get(self, name: str) -> Awaitable[Any]: ...

    def set(self, name: str, value: Any, ex: int | None = None) -> Awaitable[Any]: ...

    def delete(self, *names: str) -> Awaitable[Any]: ...

    def scan_iter(self, match: str | None = None, count: int | None = None) -> AsyncIterator[Any]: ...

    def ping(self) -> Awaitable[Any]: ...


def create_redis_client(config: RedisConfig) -> Redis:
    """
    Build a lazily-connecting redis.asyncio client from settings.

    Raises:
        ConfigurationError: If no URL is configured
    """
    if not config.url:
        raise ConfigurationError(
            "REDIS_URL must be set when the L2 tier is enabled",
            details={"env": "REDIS_URL"},
        )

    return Redis.from_url(  # type: ignore[call-overload, no-any-return]
        url=config.url,
        decode_responses=True,
        max_connections=config.max_connections,
        socket_timeout=config.socket_timeout,
    )


def _as_text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RemoteTier:
    """
    Remote cache tier over a RemoteStore client.

    Notes:
    - Keys are used exactly as given; namespacing is the caller's job.
    - TTL is applied via EX seconds (0 -> no expiry).
    - Store failures raise CacheConnectionError; ping() never raises.
    """

    def __init__(
        self,
        client: RemoteStore,
        compression: bool = True,
        codec: EntryCodec | None = None,
    ) -> None:
        """
        Initialize the remote tier.

        Args:
            client: Async key/value client (redis.asyncio.Redis or compatible)
            compression: Gzip the data field of stored envelopes
            codec: Envelope codec (default JSON codec)
        """
        self._client = client
        self.compression = compression
        self.codec = codec or EntryCodec()

    @property
    def client(self) -> RemoteStore:
        return self._client

    async def get_raw(self, key: str) -> str | None:
        """Fetch the raw envelope for a key."""
        try:
            data = await self._client.get(key)
        except Exception as e:
            raise CacheConnectionError("get", details={"key": key, "error": str(e)}) from e
        return None if data is None else _as_text(data)

    async def get(self, key: str) -> CacheEntry[Any] | None:
        """
        Fetch and decode the entry for a key.

        A payload that cannot be decoded is deleted from the store and
        reported as a miss.
        """
        raw = await self.get_raw(key)
        if raw is None:
            return None

        try:
            return self.codec.decode(raw)
        except SerializationError as e:
            logger.error(
                f"Failed to parse L2 cache data for key '{key}', deleting it: {e}",
                extra={"key": key, **e.details},
            )
            try:
                await self.delete(key)
            except CacheConnectionError as delete_error:
                logger.warning(
                    f"Failed to delete corrupt L2 key '{key}': {delete_error}",
                    extra={"key": key, "error": str(delete_error)},
                )
            return None

    async def set_with_expiry(self, key: str, ttl: int, entry: CacheEntry[Any]) -> None:
        """
        Encode and store an entry.

        Raises:
            SerializationError: If the entry cannot be encoded
            CacheConnectionError: If the store rejects the write
        """
        payload = self.codec.encode(entry, compress=self.compression)
        try:
            await self._client.set(key, payload, ex=ttl if ttl > 0 else None)
        except Exception as e:
            raise CacheConnectionError("set", details={"key": key, "ttl": ttl, "error": str(e)}) from e

    async def delete(self, key: str) -> bool:
        """Delete a single key. Returns False if it did not exist."""
        try:
            return bool(await self._client.delete(key))
        except Exception as e:
            raise CacheConnectionError("delete", details={"key": key, "error": str(e)}) from e

    async def delete_many(self, keys: list[str]) -> int:
        """Delete keys in chunks. Returns the number actually removed."""
        if not keys:
            return 0

        deleted_total = 0
        try:
            for i in range(0, len(keys), DELETE_CHUNK_SIZE):
                chunk = keys[i : i + DELETE_CHUNK_SIZE]
                deleted_total += int(await self._client.delete(*chunk))
        except Exception as e:
            raise CacheConnectionError(
                "delete_many",
                details={"key_count": len(keys), "deleted": deleted_total, "error": str(e)},
            ) from e
        return deleted_total

    async def keys_matching(self, pattern: str) -> list[str]:
        """List keys matching a glob pattern using SCAN (never KEYS)."""
        try:
            return [_as_text(k) async for k in self._client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE)]
        except Exception as e:
            raise CacheConnectionError("scan", details={"pattern": pattern, "error": str(e)}) from e

    async def ping(self) -> bool:
        """Return True if the store answers PING."""
        try:
            pong = await self._client.ping()
        except Exception as e:
            logger.warning(f"L2 ping failed: {e}", extra={"error": str(e)})
            return False
        if isinstance(pong, (str, bytes)):
            return _as_text(pong) == "PONG"
        return bool(pong)

    async def close(self) -> None:
        """Close the underlying client and release its connection pool."""
        aclose = getattr(self._client, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
            logger.info("Closed remote cache client")
        except Exception as e:
            logger.error(f"Error closing remote cache client: {e}", extra={"error": str(e)}, exc_info=True)
