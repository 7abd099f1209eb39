"""
feedcache — Paginated Fetch Controller

Incrementally accumulates pages of a paginated resource and mirrors the
whole page sequence into one PagedEntry.

State machine:
    IDLE -> LOADING -> READY -> LOADING_MORE -> READY ... -> EXHAUSTED
    LOADING / LOADING_MORE -> ERROR
    READY / EXHAUSTED / ERROR -> REFETCHING -> READY | EXHAUSTED | ERROR

Usage:
    controller = PaginatedFetchController(api.fetch_page, config, store, {"owner": None})
    controller.load()
    await controller.wait()
    controller.load_more()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..cache.entry import PagedEntry
from ..cache.store import CacheStore
from ..config.schemas import ControllerConfig
from ..errors import FeedCacheError, MalformedResponseError
from ..models import Page
from .base import BaseFetchController
from .coordinator import RequestHandle

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int, int, Mapping[str, Any]], Awaitable[Page]]


class FeedState(str, Enum):
    """Lifecycle states of a paginated controller."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOADING_MORE = "loading_more"
    EXHAUSTED = "exhausted"
    ERROR = "error"
    REFETCHING = "refetching"


_BUSY_STATES = frozenset({FeedState.LOADING, FeedState.LOADING_MORE, FeedState.REFETCHING})


@dataclass(frozen=True)
class FeedSnapshot:
    """View model of a PaginatedFetchController."""

    state: FeedState
    items: tuple[Any, ...]
    pages: tuple[Page, ...]
    has_more: bool
    is_loading: bool
    is_loading_more: bool
    error: FeedCacheError | None

    @property
    def show_retry(self) -> bool:
        """An error with nothing to show means the UI offers a retry affordance."""
        return self.error is not None and not self.items


class PaginatedFetchController(BaseFetchController[FeedSnapshot]):
    """Fetch controller for a resource cached as a PagedEntry."""

    def __init__(
        self,
        fetch_page: PageFetcher,
        config: ControllerConfig,
        store: CacheStore,
        filters: Mapping[str, Any] | None = None,
    ):
        """
        Initialize the controller and seed it from the cache.

        Args:
            fetch_page: Coroutine function (page_number, page_size, filters) -> Page
            config: Controller configuration (page_size, ttl, retry ceiling)
            store: Shared cache store
            filters: Filter dimensions passed through to fetch_page
        """
        super().__init__(config, store)
        self._fetch_page = fetch_page
        self.filters: dict[str, Any] = dict(filters or {})

        self.state = FeedState.IDLE
        self.has_more = True
        self.current_page = 0
        self._pages: list[Page] = []

        if config.enabled:
            self._seed_from_cache()

    def _seed_from_cache(self) -> bool:
        entry = self.store.get(self.cache_key, durable=self.config.use_durable_tier)
        if entry is None:
            return False
        if not isinstance(entry, PagedEntry):
            logger.warning(f"Ignoring non-paged cache entry under {self.cache_key}")
            return False
        if not entry.pages:
            return False

        self._pages = list(entry.pages)
        last = self._pages[-1]
        self.current_page = last.page_number
        self.has_more = last.has_more
        self.state = FeedState.READY if self.has_more else FeedState.EXHAUSTED
        logger.debug(f"Seeded {self.cache_key} with {len(self._pages)} cached page(s)")
        return True

    @property
    def pages(self) -> list[Page]:
        return list(self._pages)

    @property
    def items(self) -> list[Any]:
        """All items of all pages, in page order."""
        return [item for page in self._pages for item in page.items]

    @property
    def is_loading(self) -> bool:
        return self.state in (FeedState.LOADING, FeedState.REFETCHING)

    @property
    def is_loading_more(self) -> bool:
        return self.state == FeedState.LOADING_MORE

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            state=self.state,
            items=tuple(self.items),
            pages=tuple(self._pages),
            has_more=self.has_more,
            is_loading=self.is_loading,
            is_loading_more=self.is_loading_more,
            error=self.error,
        )

    def load(self) -> asyncio.Task[None] | None:
        """
        Fetch page 1 unless pages are already held (mount / dependency change).

        Returns:
            The scheduled task, or None when nothing was started
        """
        if not self.config.enabled or self.state in _BUSY_STATES:
            return None
        if self._pages or self._seed_from_cache():
            return None
        if self.retries_exhausted:
            logger.debug(f"Skipping automatic fetch for {self.cache_key}: retry ceiling reached")
            return None

        self.current_page = 0
        return self._start(1, replace=True, state=FeedState.LOADING)

    def load_more(self) -> asyncio.Task[None] | None:
        """
        Fetch the page after current_page and append it.

        Returns:
            The scheduled task, or None when busy or exhausted
        """
        if not self.config.enabled or self.state in _BUSY_STATES or not self.has_more:
            return None

        state = FeedState.LOADING_MORE if self._pages else FeedState.LOADING
        return self._start(self.current_page + 1, replace=False, state=state)

    def refetch(self) -> asyncio.Task[None]:
        """Discard every page and fetch page 1 fresh."""
        was_settled = self.state in (FeedState.READY, FeedState.EXHAUSTED, FeedState.ERROR)
        self._retry_count = 0
        self._pages = []
        self.current_page = 0
        self.has_more = True
        return self._start(1, replace=True, state=FeedState.REFETCHING if was_settled else FeedState.LOADING)

    def invalidate_cache(self) -> asyncio.Task[None]:
        """Delete the cache entry, then refetch."""
        self.store.delete(self.cache_key)
        return self.refetch()

    def _start(self, page_number: int, replace: bool, state: FeedState) -> asyncio.Task[None]:
        self.state = state
        self.error = None
        self._notify()
        return self._coordinator.start(lambda handle: self._run(handle, page_number, replace))

    async def _run(self, handle: RequestHandle, page_number: int, replace: bool) -> None:
        page_size = self.config.page_size
        try:
            page = await self._call(lambda: self._fetch_page(page_number, page_size, dict(self.filters)))
            if not isinstance(page, Page):
                raise MalformedResponseError(
                    f"Page fetcher returned {type(page).__name__}, expected Page",
                    {"cache_key": self.cache_key, "page_number": page_number},
                )
        except asyncio.CancelledError:
            if handle.superseded:
                logger.debug(f"Page {page_number} request for {self.cache_key} superseded")
                return
            raise
        except FeedCacheError as e:
            if not self._commit_allowed(handle):
                return
            self._record_failure(e)
            self.state = FeedState.ERROR
            self._notify()
            return

        if not self._commit_allowed(handle):
            return

        self._commit_page(page, replace)

    def _commit_page(self, page: Page, replace: bool) -> None:
        if replace:
            pages = [page]
        else:
            pages = [existing for existing in self._pages if existing.page_number != page.page_number]
            pages.append(page)
            pages.sort(key=lambda p: p.page_number)

        self._pages = pages
        self.current_page = page.page_number
        self.has_more = page.has_more

        now = self.store.now()
        self.store.set(
            self.cache_key,
            PagedEntry.create(pages, ttl=self.config.ttl, now=now),
            durable=self.config.use_durable_tier,
        )

        self._retry_count = 0
        self.error = None
        self.state = FeedState.READY if self.has_more else FeedState.EXHAUSTED
        logger.debug(
            f"Committed page {page.page_number} for {self.cache_key} ({len(pages)} page(s), has_more={self.has_more})",
            extra={"cache_key": self.cache_key, "page_number": page.page_number, "pages": len(pages)},
        )
        self._notify()

    def _on_close(self) -> None:
        if self.state in _BUSY_STATES:
            self.state = FeedState.READY if self._pages else FeedState.IDLE
            if self._pages and not self.has_more:
                self.state = FeedState.EXHAUSTED
