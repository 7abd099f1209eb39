"""
feedcache — Fetch Controller Base

Shared plumbing for the single-resource and paginated controllers:
- listener subscription and change notification
- consecutive-failure counter and retry ceiling
- request timeout and error normalization around a fetcher call
- commit guard backed by the RequestCoordinator
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from ..cache.store import CacheStore
from ..config.schemas import ControllerConfig
from ..errors import FeedCacheError, FetchError, RequestTimeoutError, SupersededError
from .coordinator import RequestCoordinator, RequestHandle

logger = logging.getLogger(__name__)

SnapshotT = TypeVar("SnapshotT")
ResultT = TypeVar("ResultT")

Listener = Callable[[Any], None]


class BaseFetchController(ABC, Generic[SnapshotT]):
    """Base class for fetch controllers bound to one cache key."""

    def __init__(self, config: ControllerConfig, store: CacheStore):
        self.config = config
        self.store = store
        self.error: FeedCacheError | None = None

        self._coordinator = RequestCoordinator(config.cache_key)
        self._listeners: list[Listener] = []
        self._retry_count = 0

    @property
    def cache_key(self) -> str:
        return self.config.cache_key

    @property
    def retry_count(self) -> int:
        """Consecutive failures since the last success or manual refetch."""
        return self._retry_count

    @property
    def retries_exhausted(self) -> bool:
        return self._retry_count >= self.config.max_retries

    @property
    def in_flight(self) -> bool:
        return self._coordinator.in_flight

    @abstractmethod
    def snapshot(self) -> SnapshotT:
        """Immutable view of the controller's current state."""

    def subscribe(self, listener: Callable[[SnapshotT], None]) -> Callable[[], None]:
        """
        Register a listener called with a fresh snapshot after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(
                    f"Listener failed for {self.cache_key}: {e}",
                    extra={"cache_key": self.cache_key, "error": str(e)},
                    exc_info=True,
                )

    async def _call(self, operation: Callable[[], Awaitable[ResultT]]) -> ResultT:
        """
        Run one fetcher call under the configured timeout.

        Raises:
            RequestTimeoutError: If request_timeout elapsed
            FeedCacheError: Any other failure, wrapped into FetchError if needed
        """
        timeout = self.config.request_timeout
        try:
            if timeout is not None:
                return await asyncio.wait_for(operation(), timeout=timeout)
            return await operation()
        except FeedCacheError:
            raise
        except TimeoutError as e:
            if timeout is None:
                raise FetchError(f"Fetch for '{self.cache_key}' timed out", {"cache_key": self.cache_key}) from e
            raise RequestTimeoutError(self.cache_key, timeout) from e
        except Exception as e:
            raise FetchError(
                f"Fetch for '{self.cache_key}' failed: {e}",
                {"cache_key": self.cache_key, "error_type": type(e).__name__},
            ) from e

    def _commit_allowed(self, handle: RequestHandle) -> bool:
        """Check the handle is still current and release it if so."""
        try:
            self._coordinator.ensure_current(handle)
        except SupersededError as e:
            logger.debug(f"Discarding result: {e.message}", extra={"cache_key": self.cache_key})
            return False
        self._coordinator.release(handle)
        return True

    def _record_failure(self, error: FeedCacheError) -> None:
        self._retry_count += 1
        self.error = error
        logger.warning(
            f"Fetch failed for {self.cache_key} ({self._retry_count}/{self.config.max_retries}): {error.message}",
            extra={
                "cache_key": self.cache_key,
                "retry_count": self._retry_count,
                "error": error.to_dict(),
            },
        )
        if self.retries_exhausted:
            logger.error(
                f"Retry ceiling reached for {self.cache_key}, automatic fetches stopped",
                extra={"cache_key": self.cache_key, "max_retries": self.config.max_retries},
            )

    async def wait(self) -> None:
        """Wait until no request is in flight (follows superseding requests)."""
        while True:
            handle = self._coordinator.current
            task = handle.task if handle is not None else None
            if task is None or task.done():
                return
            await asyncio.wait({task})

    def close(self) -> None:
        """Cancel in-flight work; call when the owning scope is torn down."""
        self._coordinator.cancel()
        self._on_close()

    def _on_close(self) -> None:
        pass
