"""
feedcache — Posts Feed

Composes the paginated posts listing with server-side owner filtering and
client-side search.

Data flow:
1. selected owner -> cache key -> PaginatedFetchController (one per key)
2. owner changes run cross-filter invalidation before the new key is used
3. search query filters the loaded items by title/body, without fetching
"""

import asyncio
import logging
from collections.abc import Hashable, Iterable
from typing import Any

from ..api.client import ApiClient
from ..cache.keys import FilterCacheManager
from ..cache.store import CacheStore
from ..config.schemas import ControllerDefaults
from ..errors import FeedCacheError
from ..fetch.paginated import PaginatedFetchController
from ..search import SearchResult, post_search_fields, search_items

logger = logging.getLogger(__name__)

POSTS_RESOURCE = "posts"
OWNER_DIMENSION = "owner"


class PostsFeed:
    """
    Filterable, searchable, infinitely scrolling posts feed.

    The feed owns its current controller and closes it whenever the owner
    filter moves to another cache key.
    """

    def __init__(
        self,
        api: ApiClient,
        store: CacheStore,
        defaults: ControllerDefaults | None = None,
        known_owners: Iterable[Hashable] = (),
        owner: int | None = None,
        enabled: bool = True,
    ):
        """
        Initialize the feed.

        Args:
            api: Resource API client
            store: Shared cache store
            defaults: Controller defaults (ttl, page size, retries)
            known_owners: Owner ids eligible for cross-filter invalidation
            owner: Initially selected owner (None = all owners)
            enabled: Passed through to every controller
        """
        self.api = api
        self.store = store
        self.defaults = defaults or ControllerDefaults()
        self.enabled = enabled
        self.search_query = ""

        self.filters = FilterCacheManager(
            store,
            POSTS_RESOURCE,
            self.defaults.page_size,
            OWNER_DIMENSION,
            known_values=known_owners,
            initial=owner,
        )
        self.controller = self._create_controller(owner)

    def _create_controller(self, owner: int | None) -> PaginatedFetchController:
        config = self.defaults.for_key(self.filters.key_for(owner), enabled=self.enabled)
        return PaginatedFetchController(self.api.fetch_page, config, self.store, {OWNER_DIMENSION: owner})

    @property
    def selected_owner(self) -> int | None:
        return self.filters.current  # type: ignore[return-value]

    def set_known_owners(self, owners: Iterable[Hashable]) -> None:
        self.filters.set_known_values(owners)

    def select_owner(self, owner: int | None) -> asyncio.Task[None] | None:
        """
        Switch the owner filter and load the matching listing.

        Returns:
            The task loading page 1, or None when cached pages were reused
        """
        key = self.filters.select(owner)
        if key != self.controller.cache_key:
            logger.info(f"Posts feed switching to {key}", extra={"owner": owner, "cache_key": key})
            self.controller.close()
            self.controller = self._create_controller(owner)
        return self.controller.load()

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def reset_filters(self) -> asyncio.Task[None] | None:
        """Clear the search query and the owner filter."""
        self.search_query = ""
        return self.select_owner(None)

    @property
    def server_items(self) -> list[dict[str, Any]]:
        """Loaded items before client-side search."""
        return self.controller.items

    @property
    def search_result(self) -> SearchResult[dict[str, Any]]:
        return search_items(self.server_items, self.search_query, post_search_fields)

    @property
    def posts(self) -> list[dict[str, Any]]:
        return self.search_result.items

    @property
    def match_count(self) -> int:
        return self.search_result.match_count

    @property
    def has_active_search(self) -> bool:
        return bool(self.search_query.strip())

    @property
    def has_active_filters(self) -> bool:
        return self.selected_owner is not None

    @property
    def is_loading(self) -> bool:
        return self.controller.is_loading

    @property
    def is_loading_more(self) -> bool:
        return self.controller.is_loading_more

    @property
    def has_more(self) -> bool:
        return self.controller.has_more

    @property
    def error(self) -> FeedCacheError | None:
        return self.controller.error

    def load(self) -> asyncio.Task[None] | None:
        return self.controller.load()

    def load_more(self) -> asyncio.Task[None] | None:
        return self.controller.load_more()

    def refetch(self) -> asyncio.Task[None]:
        return self.controller.refetch()

    def invalidate_cache(self) -> asyncio.Task[None]:
        return self.controller.invalidate_cache()

    async def wait(self) -> None:
        await self.controller.wait()

    def close(self) -> None:
        self.controller.close()
