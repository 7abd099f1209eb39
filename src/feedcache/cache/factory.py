"""
feedcache — Cache Store Factory

Builds a CacheStore from configuration. The caller (normally
FeedCacheRuntime) owns the returned store and closes it at shutdown.

Durable backend selection via CACHE_DURABLE_BACKEND=none|sqlite|redis:
- Defaults to sqlite, or redis when REDIS_URL is set
- A durable backend that cannot be opened is logged and the store starts
  memory-only instead of failing application startup

Examples:
    from feedcache.cache.factory import create_cache_store
    from feedcache.config import CacheConfig, DurableBackend

    store = create_cache_store(CacheConfig(durable_backend=DurableBackend.NONE))
"""

from __future__ import annotations

import logging

from ..config import CacheConfig, DurableBackend, get_config
from ..errors import ConfigurationError, StorageUnavailableError
from .backends.memory import MemoryTier
from .backends.sqlite import SQLiteStorage
from .interface import DurableStorage
from .store import CacheStore, Clock

logger = logging.getLogger(__name__)


def _create_sqlite_storage(config: CacheConfig) -> DurableStorage:
    """Internal helper to construct and warm up the SQLite durable tier."""
    storage = SQLiteStorage(db_path=config.sqlite_path)
    storage.purge_expired()
    return storage


def _create_redis_storage(config: CacheConfig) -> DurableStorage:
    """Internal helper to construct the Redis durable tier with lazy import."""
    if not config.redis_url:
        raise ConfigurationError(
            "REDIS_URL must be set when CACHE_DURABLE_BACKEND=redis",
            details={"env": "REDIS_URL", "backend": "redis"},
        )

    # Lazy import to avoid hard dependency when another durable tier is used
    try:
        from .backends.redis import RedisStorage
    except ImportError as e:
        logger.error(
            "Redis durable tier selected but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise ConfigurationError(
            "Redis durable tier selected but redis client is unavailable. "
            "Install with: pip install 'redis>=5.0.0' or add to dependencies.",
            details={"package": "redis>=5.0.0", "error": str(e), "backend": "redis"},
        ) from e

    return RedisStorage(redis_url=config.redis_url, socket_timeout=config.redis_socket_timeout)


def create_durable_storage(config: CacheConfig) -> DurableStorage | None:
    """
    Create the configured durable tier.

    Returns:
        Durable storage, or None when the backend is "none"

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
        StorageUnavailableError: If the backend cannot be opened
    """
    backend = DurableBackend(config.durable_backend)

    if backend == DurableBackend.NONE:
        return None
    if backend == DurableBackend.SQLITE:
        return _create_sqlite_storage(config)
    if backend == DurableBackend.REDIS:
        return _create_redis_storage(config)

    raise ConfigurationError(
        f"Unknown durable backend: {config.durable_backend}",
        details={"backend": str(config.durable_backend), "supported": [b.value for b in DurableBackend]},
    )


def create_cache_store(config: CacheConfig | None = None, clock: Clock | None = None) -> CacheStore:
    """
    Create a CacheStore based on configuration.

    Args:
        config: Cache configuration (uses global config if not provided)
        clock: Optional time source (tests)

    Returns:
        Configured CacheStore

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if config is None:
        config = get_config().cache

    logger.info(
        "Creating cache store with durable backend: %s",
        config.durable_backend,
        extra={"durable_backend": str(config.durable_backend), "namespace": config.namespace},
    )

    try:
        durable = create_durable_storage(config)
    except StorageUnavailableError as e:
        logger.warning(
            "Durable tier unavailable at startup, running memory-only: %s",
            e,
            extra={"durable_backend": str(config.durable_backend), "error": str(e)},
        )
        durable = None

    store_kwargs = {"clock": clock} if clock is not None else {}
    return CacheStore(
        fast=MemoryTier(max_size=config.max_size),
        durable=durable,
        namespace=config.namespace,
        **store_kwargs,
    )
