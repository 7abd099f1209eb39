"""
feedcache — Request Coordinator

Keeps at most one in-flight request per controller instance.

Pattern:
- begin() supersedes (and cancels) the current handle before issuing a new one
- every completion checks is_current(handle) before committing state, so a
  slow superseded response can never overwrite a newer one
- cancel() tears down the in-flight request when the owning scope closes

Usage:
    coordinator = RequestCoordinator("posts_10_owner=all")
    task = coordinator.start(lambda handle: fetch_and_commit(handle))
"""

import asyncio
import itertools
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from ..errors import SupersededError

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


class RequestHandle:
    """Cancellation handle for one request."""

    def __init__(self, target: str):
        self.target = target
        self.request_id = next(_handle_ids)
        self.task: asyncio.Task[None] | None = None
        self.cancelled = False
        self.superseded = False

    def cancel(self, superseded: bool = False) -> None:
        """Signal cancellation and interrupt the request's task."""
        self.cancelled = True
        self.superseded = self.superseded or superseded
        if self.task is not None and not self.task.done():
            self.task.cancel()

    def __repr__(self) -> str:
        state = "superseded" if self.superseded else "cancelled" if self.cancelled else "active"
        return f"RequestHandle(target={self.target!r}, id={self.request_id}, {state})"


class RequestCoordinator:
    """
    Tracks the single current request of a controller.

    Not thread-safe: all calls happen on the event loop thread.
    """

    def __init__(self, target: str):
        """
        Initialize the coordinator.

        Args:
            target: Logical fetch target (the controller's cache key), used in logs
        """
        self.target = target
        self._current: RequestHandle | None = None

    @property
    def current(self) -> RequestHandle | None:
        return self._current

    @property
    def in_flight(self) -> bool:
        return self._current is not None and self._current.task is not None and not self._current.task.done()

    def begin(self) -> RequestHandle:
        """Supersede the current request (if any) and return a fresh handle."""
        previous = self._current
        if previous is not None:
            previous.cancel(superseded=True)
            logger.debug(f"Superseded request {previous.request_id} for {self.target}")

        handle = RequestHandle(self.target)
        self._current = handle
        return handle

    def start(self, runner: Callable[[RequestHandle], Coroutine[Any, Any, None]]) -> asyncio.Task[None]:
        """
        Begin a request and schedule ``runner(handle)`` as a task on the running loop.

        Returns:
            The scheduled task
        """
        handle = self.begin()
        task = asyncio.get_running_loop().create_task(runner(handle), name=f"feedcache:{self.target}")
        handle.task = task
        return task

    def is_current(self, handle: RequestHandle) -> bool:
        return handle is self._current and not handle.cancelled

    def ensure_current(self, handle: RequestHandle) -> None:
        """
        Raises:
            SupersededError: If ``handle`` is no longer the current request
        """
        if not self.is_current(handle):
            raise SupersededError(self.target)

    def release(self, handle: RequestHandle) -> None:
        """Forget ``handle`` once its result has been committed."""
        if self._current is handle:
            self._current = None

    def cancel(self) -> None:
        """Cancel the in-flight request without starting a new one."""
        if self._current is not None:
            self._current.cancel()
            logger.debug(f"Cancelled request {self._current.request_id} for {self.target}")
            self._current = None
