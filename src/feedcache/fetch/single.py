"""
feedcache — Single-Resource Fetch Controller

Stale-while-revalidate loading of a resource fetched as one unit.

Behavior:
- cached payload is available synchronously at construction and from load()
- no payload: one foreground fetch (is_loading=True)
- expired (or removed) entry: the held payload is dropped and treated as
  no payload
- stale payload: background revalidation, is_loading untouched, failures
  kept in background_error while the old payload is retained
- every successful fetch writes exactly one cache entry
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ..cache.entry import SingleEntry
from ..cache.store import CacheStore
from ..config.schemas import ControllerConfig
from ..errors import FeedCacheError
from .base import BaseFetchController
from .coordinator import RequestHandle

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SingleSnapshot:
    """View model of a SingleResourceController."""

    payload: Any
    has_payload: bool
    is_loading: bool
    error: FeedCacheError | None
    background_error: FeedCacheError | None


class SingleResourceController(BaseFetchController[SingleSnapshot]):
    """Fetch controller for a resource cached as a SingleEntry."""

    def __init__(self, fetcher: Fetcher, config: ControllerConfig, store: CacheStore):
        """
        Initialize the controller and seed it from the cache.

        Args:
            fetcher: Zero-argument coroutine function producing the payload
            config: Controller configuration
            store: Shared cache store
        """
        super().__init__(config, store)
        self._fetcher = fetcher
        self.payload: Any = None
        self.has_payload = False
        self.is_loading = False
        self.background_error: FeedCacheError | None = None

        if config.enabled:
            self._seed_from_cache()

    def _cached_entry(self) -> SingleEntry | None:
        entry = self.store.get(self.cache_key, durable=self.config.use_durable_tier)
        if entry is not None and not isinstance(entry, SingleEntry):
            logger.warning(f"Ignoring non-single cache entry under {self.cache_key}")
            return None
        return entry

    def _seed_from_cache(self) -> SingleEntry | None:
        entry = self._cached_entry()
        if entry is not None:
            self.payload = entry.payload
            self.has_payload = True
        return entry

    def is_stale(self) -> bool:
        """True when the cache entry is stale or gone."""
        entry = self._cached_entry()
        if entry is None:
            return True
        return entry.is_stale(self.store.now(), self.config.stale_threshold)

    def snapshot(self) -> SingleSnapshot:
        return SingleSnapshot(
            payload=self.payload,
            has_payload=self.has_payload,
            is_loading=self.is_loading,
            error=self.error,
            background_error=self.background_error,
        )

    def load(self) -> Any:
        """
        Return the cached payload and schedule whatever fetch is needed.

        Returns:
            The current payload (None when nothing is cached yet)
        """
        if not self.config.enabled:
            return self.payload

        entry = self._seed_from_cache()
        if entry is None and self.has_payload:
            # Only unexpired cached payloads are served
            logger.debug(f"Cached payload for {self.cache_key} expired, fetching in foreground")
            self.payload = None
            self.has_payload = False
            self._notify()

        if entry is not None:
            if entry.is_stale(self.store.now(), self.config.stale_threshold):
                self._start(background=True)
            return self.payload

        if self.retries_exhausted:
            logger.debug(f"Skipping automatic fetch for {self.cache_key}: retry ceiling reached")
            return self.payload

        if not self.is_loading:
            self._start(background=False)
        return self.payload

    def refetch(self) -> asyncio.Task[None]:
        """Foreground fetch regardless of freshness."""
        self._retry_count = 0
        return self._start(background=False)

    def invalidate(self) -> asyncio.Task[None]:
        """Delete the cache entry, then refetch."""
        self.store.delete(self.cache_key)
        return self.refetch()

    def refetch_if_stale(self) -> asyncio.Task[None] | None:
        """Background revalidation when the entry is stale or missing (e.g. on focus)."""
        if not self.config.enabled or not self.is_stale():
            return None
        return self._start(background=True)

    def _start(self, background: bool) -> asyncio.Task[None]:
        current = self._coordinator.current
        if background and self.in_flight and current is not None and current.task is not None:
            # A request is already on its way; it will refresh the entry
            return current.task

        if not background:
            self.is_loading = True
            self.error = None
            self._notify()

        return self._coordinator.start(lambda handle: self._run(handle, background))

    async def _run(self, handle: RequestHandle, background: bool) -> None:
        try:
            payload = await self._call(self._fetcher)
        except asyncio.CancelledError:
            if handle.superseded:
                logger.debug(f"Request {handle.request_id} for {self.cache_key} superseded")
                return
            raise
        except FeedCacheError as e:
            if not self._commit_allowed(handle):
                return
            if background:
                self.background_error = e
                logger.warning(
                    f"Background revalidation failed for {self.cache_key}, keeping cached payload: {e.message}",
                    extra={"cache_key": self.cache_key, "error": e.to_dict()},
                )
            else:
                self.is_loading = False
                self._record_failure(e)
            self._notify()
            return

        if not self._commit_allowed(handle):
            return

        now = self.store.now()
        self.store.set(
            self.cache_key,
            SingleEntry.create(payload, ttl=self.config.ttl, now=now),
            durable=self.config.use_durable_tier,
        )
        self.payload = payload
        self.has_payload = True
        self.is_loading = False
        self.error = None
        self.background_error = None
        self._retry_count = 0
        logger.debug(f"Fetched {self.cache_key} ({'background' if background else 'foreground'})")
        self._notify()

    def _on_close(self) -> None:
        self.is_loading = False
