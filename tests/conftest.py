"""
feedcache — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Generator, Mapping
from typing import Any

import pytest

from feedcache.cache.backends.memory import MemoryTier
from feedcache.cache.backends.sqlite import SQLiteStorage
from feedcache.cache.interface import DurableStorage
from feedcache.cache.store import CacheStore
from feedcache.errors import StorageUnavailableError
from feedcache.models import Page, PaginationMeta

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


# Redis availability checker
def is_redis_available() -> bool:
    """Check if Redis server is available for testing."""
    import socket

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("localhost", 6379))
        sock.close()
        return result == 0
    except OSError:
        return False


class FakeClock:
    """Manually advanced time source in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStorage(DurableStorage):
    """Durable tier whose every operation fails."""

    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, operation: str) -> None:
        self.calls += 1
        raise StorageUnavailableError(self.name, operation, {"reason": "quota exceeded"})

    def get_item(self, key: str) -> str | None:
        self._fail("get")
        return None

    def set_item(self, key: str, value: str, ttl: float | None = None) -> None:
        self._fail("set")

    def remove_item(self, key: str) -> None:
        self._fail("delete")

    def keys(self, prefix: str) -> list[str]:
        self._fail("keys")
        return []


def make_posts(count: int, user_id: int = 1, start_id: int = 1) -> list[dict[str, Any]]:
    """Build ``count`` well-formed post dicts."""
    return [
        {"userId": user_id, "id": start_id + i, "title": f"post {start_id + i}", "body": f"body of {start_id + i}"}
        for i in range(count)
    ]


class FakePostsSource:
    """
    In-memory paginated source with call recording.

    Set ``failures`` to make the next N calls raise; set ``gate`` to an
    asyncio.Event to hold responses until it is set.
    """

    def __init__(self, posts: list[dict[str, Any]]):
        self.posts = posts
        self.calls: list[tuple[int, int, dict[str, Any]]] = []
        self.failures = 0
        self.error: Exception = RuntimeError("upstream down")
        self.gate: asyncio.Event | None = None

    async def fetch_page(self, page_number: int, page_size: int, filters: Mapping[str, Any]) -> Page:
        self.calls.append((page_number, page_size, dict(filters)))
        if self.gate is not None:
            await self.gate.wait()
        if self.failures > 0:
            self.failures -= 1
            raise self.error

        owner = filters.get("owner")
        posts = [p for p in self.posts if owner is None or p["userId"] == owner]
        start = (page_number - 1) * page_size
        return Page(
            items=posts[start : start + page_size],
            pagination=PaginationMeta.compute(page_number, page_size, len(posts)),
        )


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock shared by stores built in a test."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> CacheStore:
    """Memory-only store driven by the fake clock."""
    return CacheStore(fast=MemoryTier(max_size=100), durable=None, namespace="test_", clock=clock)


@pytest.fixture
def sqlite_storage(tmp_path: Any) -> Generator[SQLiteStorage, None, None]:
    """SQLite durable tier in a temporary directory."""
    storage = SQLiteStorage(db_path=str(tmp_path / "cache" / "feedcache.db"))
    yield storage
    storage.close()


@pytest.fixture
def durable_store(clock: FakeClock, sqlite_storage: SQLiteStorage) -> CacheStore:
    """Two-tier store backed by SQLite."""
    return CacheStore(fast=MemoryTier(max_size=100), durable=sqlite_storage, namespace="test_", clock=clock)


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def posts_source() -> FakePostsSource:
    """25 posts: user 1 owns ids 1-10, user 2 owns 11-20, user 3 owns 21-25."""
    posts = make_posts(10, user_id=1) + make_posts(10, user_id=2, start_id=11) + make_posts(5, user_id=3, start_id=21)
    return FakePostsSource(posts)


@pytest.fixture
def value_fetcher() -> Callable[..., Callable[[], Awaitable[Any]]]:
    """Factory for zero-argument fetchers returning queued values (or raising queued exceptions)."""

    def factory(*results: Any) -> Callable[[], Awaitable[Any]]:
        queue = list(results)
        calls = {"count": 0}

        async def fetcher() -> Any:
            calls["count"] += 1
            result = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(result, BaseException):
                raise result
            return result

        fetcher.calls = calls  # type: ignore[attr-defined]
        return fetcher

    return factory


@pytest.fixture(autouse=True)
def reset_loaded_config() -> Generator[None, None, None]:
    """Reset the loaded configuration after each test to prevent state leakage."""
    yield
    from feedcache.config import reset_config

    reset_config()


@pytest.fixture
def post_factory() -> Callable[..., list[dict[str, Any]]]:
    return make_posts


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def redis_storage(test_redis_url: str) -> Generator[Any, None, None]:
    """
    Redis durable tier on the test database.

    Automatically skips tests if Redis is not available.
    """
    if not is_redis_available():
        pytest.skip("Redis server not available")

    from feedcache.cache.backends.redis import RedisStorage

    storage = RedisStorage(redis_url=test_redis_url)
    try:
        storage.remove_prefix("test_")
    except StorageUnavailableError as e:
        storage.close()
        pytest.skip(f"Redis not available for testing: {e}")

    yield storage

    try:
        storage.remove_prefix("test_")
    finally:
        storage.close()
