"""
feedcache — Redis Durable Tier

Redis-backed durable tier with:
- Values stored as UTF-8 JSON strings under namespace-prefixed keys
- Native key expiry (PX) from the entry TTL
- Prefix clearing via SCAN so unrelated keys are never touched

Uses the synchronous redis-py client: durable tier access is part of the
synchronous cache path and never a suspension point.

Example:
    storage = RedisStorage(redis_url="redis://localhost:6379/0")
    storage.set_item("api_cache_users", '{"kind": "single", ...}', ttl=300)
"""

from __future__ import annotations

import logging

from ...errors import StorageUnavailableError
from ..interface import DurableStorage

logger = logging.getLogger(__name__)

try:
    from redis import Redis
    from redis.exceptions import RedisError
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis client is required but not installed. "
        "Install with: pip install 'redis>=5.0.0' or add 'redis' to your dependencies."
    ) from e


class RedisStorage(DurableStorage):
    """Redis durable tier."""

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        socket_timeout: float = 2.0,
        client: Redis | None = None,
    ) -> None:
        """
        Initialize the Redis durable tier.

        Args:
            redis_url: Connection URL, e.g. redis://localhost:6379/0 or rediss:// for TLS
            socket_timeout: Socket timeout in seconds
            client: Pre-built client (tests)
        """
        if not redis_url and client is None:
            raise ValueError("redis_url is required")

        self.redis_url = redis_url
        # Lazy connection; connects on first command
        self._client: Redis = client or Redis.from_url(
            url=redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def get_item(self, key: str) -> str | None:
        try:
            data = self._client.get(key)
        except RedisError as e:
            raise StorageUnavailableError(self.name, "get", {"key": key, "error": str(e)}) from e
        if isinstance(data, bytes):
            return data.decode("utf-8")
        return data  # type: ignore[return-value]

    def set_item(self, key: str, value: str, ttl: float | None = None) -> None:
        px = max(1, int(ttl * 1000)) if ttl else None
        try:
            self._client.set(name=key, value=value, px=px)
        except RedisError as e:
            raise StorageUnavailableError(self.name, "set", {"key": key, "error": str(e)}) from e

    def remove_item(self, key: str) -> None:
        try:
            self._client.delete(key)
        except RedisError as e:
            raise StorageUnavailableError(self.name, "delete", {"key": key, "error": str(e)}) from e

    def keys(self, prefix: str) -> list[str]:
        try:
            return [
                k.decode("utf-8") if isinstance(k, bytes) else k
                for k in self._client.scan_iter(match=f"{_escape_glob(prefix)}*", count=1000)
            ]
        except RedisError as e:
            raise StorageUnavailableError(self.name, "keys", {"prefix": prefix, "error": str(e)}) from e

    def remove_prefix(self, prefix: str) -> int:
        keys = self.keys(prefix)
        total_deleted = 0
        chunk_size = 1000
        try:
            for i in range(0, len(keys), chunk_size):
                chunk = keys[i : i + chunk_size]
                total_deleted += int(self._client.delete(*chunk))  # type: ignore[arg-type]
        except RedisError as e:
            raise StorageUnavailableError(self.name, "clear", {"prefix": prefix, "error": str(e)}) from e
        logger.info(f"Cleared {total_deleted} keys with prefix '{prefix}'")
        return total_deleted

    def close(self) -> None:
        try:
            self._client.close()
            logger.info("Closed Redis durable tier")
        except RedisError as e:
            logger.warning(f"Error closing Redis client: {e}", extra={"error": str(e)})


def _escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters in a literal prefix."""
    for ch in ("\\", "*", "?", "[", "]"):
        text = text.replace(ch, "\\" + ch)
    return text
