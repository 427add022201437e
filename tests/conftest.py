"""
TierCache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
L2 tests run against fakeredis; tests that need a real server skip when
none is reachable on localhost:6379.
"""

import os
import socket
from collections.abc import AsyncGenerator, AsyncIterator, Generator
from typing import Any

import fakeredis
import pytest

from tiercache.cache import CacheManager
from tiercache.config import CacheConfig, LocalTierConfig, RemoteTierConfig

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


def is_redis_available() -> bool:
    """Check if a Redis server is available for testing."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("localhost", 6379))
        sock.close()
        return result == 0
    except OSError:
        return False


# Skip marker for tests that need a real Redis server
redis_available = pytest.mark.skipif(not is_redis_available(), reason="Redis server not available")


class FakeClock:
    """Manually advanced monotonic clock for deterministic TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStore:
    """Remote store whose every command fails, as if the network were down."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def get(self, name: str) -> Any:
        self.calls.append("get")
        raise ConnectionError("connection refused")

    async def set(self, name: str, value: Any, ex: int | None = None) -> Any:
        self.calls.append("set")
        raise ConnectionError("connection refused")

    async def delete(self, *names: str) -> int:
        self.calls.append("delete")
        raise ConnectionError("connection refused")

    async def scan_iter(self, match: str | None = None, count: int | None = None) -> AsyncIterator[Any]:
        self.calls.append("scan_iter")
        raise ConnectionError("connection refused")
        yield  # pragma: no cover

    async def ping(self) -> bool:
        self.calls.append("ping")
        raise ConnectionError("connection refused")


@pytest.fixture
def clock() -> FakeClock:
    """A fake monotonic clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """An isolated in-process fake Redis with string responses."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def failing_store() -> FailingStore:
    """A remote store that fails every command."""
    return FailingStore()


@pytest.fixture
def cache_config() -> CacheConfig:
    """Default-shaped config with a test key prefix."""
    return CacheConfig(
        l1=LocalTierConfig(ttl_seconds=60, max_keys=100, check_period=0),
        l2=RemoteTierConfig(ttl_seconds=3600, compression=True, key_prefix="test:"),
    )


@pytest.fixture
async def manager(
    redis_client: fakeredis.FakeAsyncRedis,
    cache_config: CacheConfig,
    clock: FakeClock,
) -> AsyncGenerator[CacheManager, None]:
    """A CacheManager over fakeredis with a controllable L1 clock."""
    cache = CacheManager(redis_client, cache_config, stats_interval=0, clock=clock)
    yield cache
    await cache.destroy()


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample JSON-compatible values for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
        "unicode": "Grüße, 世界",
    }


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset the factory registry and cached settings after each test."""
    yield
    from tiercache.cache.factory import reset_cache_factory
    from tiercache.config import reset_settings

    reset_cache_factory()
    reset_settings()
