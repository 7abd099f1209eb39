"""
feedcache — Runtime

Application-lifetime owner of the shared CacheStore and ApiClient.
Resources created through the runtime share its store and are closed with it.

Usage:
    async with FeedCacheRuntime.from_config() as runtime:
        feed = runtime.posts_feed()
        feed.load()
        await feed.wait()
"""

import logging
from collections.abc import Hashable, Iterable
from typing import Any

from .api.client import ApiClient
from .api.estimators import TotalCountEstimator
from .cache.factory import create_cache_store
from .cache.store import CacheStore, Clock
from .config import FeedCacheConfig, load_config
from .resources.posts import PostsFeed
from .resources.users import USERS_CACHE_KEY, UsersResource

logger = logging.getLogger(__name__)


class FeedCacheRuntime:
    """Explicit application context for controllers and resources."""

    def __init__(
        self,
        config: FeedCacheConfig | None = None,
        store: CacheStore | None = None,
        api: ApiClient | None = None,
        clock: Clock | None = None,
        estimator: TotalCountEstimator | None = None,
    ):
        """
        Initialize the runtime.

        Args:
            config: Root configuration (defaults when omitted)
            store: Cache store (built from config.cache when omitted)
            api: API client (built from config.api when omitted)
            clock: Time source for a store built here
            estimator: Total count fallback for an API client built here
        """
        self.config = config or FeedCacheConfig()
        self.store = store if store is not None else create_cache_store(self.config.cache, clock=clock)
        self.api = api if api is not None else ApiClient(self.config.api, estimator=estimator)
        self._resources: list[UsersResource | PostsFeed] = []
        self._closed = False

    @classmethod
    def from_config(cls, env_file: str | None = None, **kwargs: Any) -> "FeedCacheRuntime":
        """Build a runtime from environment variables and an optional .env file."""
        return cls(config=load_config(env_file=env_file), **kwargs)

    async def __aenter__(self) -> "FeedCacheRuntime":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def users(self, **overrides: Any) -> UsersResource:
        """Create the users resource (cache key ``users``)."""
        config = self.config.controllers.for_key(USERS_CACHE_KEY, **overrides)
        resource = UsersResource(self.api, self.store, config)
        self._resources.append(resource)
        return resource

    def posts_feed(
        self,
        owner: int | None = None,
        known_owners: Iterable[Hashable] = (),
        enabled: bool = True,
        users: UsersResource | None = None,
    ) -> PostsFeed:
        """
        Create a posts feed sharing this runtime's store.

        Owners eligible for cross-filter invalidation are ``known_owners`` when
        given. Otherwise they follow the user ids of ``users`` (by default the
        most recently created users resource) and are updated as it loads.
        """
        known = list(known_owners)
        feed = PostsFeed(
            self.api,
            self.store,
            self.config.controllers,
            known_owners=known,
            owner=owner,
            enabled=enabled,
        )
        if not known:
            source = users or self._latest_users()
            if source is not None:
                self._follow_user_ids(feed, source)
        self._resources.append(feed)
        return feed

    def _latest_users(self) -> UsersResource | None:
        for resource in reversed(self._resources):
            if isinstance(resource, UsersResource):
                return resource
        return None

    def _follow_user_ids(self, feed: PostsFeed, users: UsersResource) -> None:
        def sync(_snapshot: Any = None) -> None:
            feed.set_known_owners(users.user_ids)

        sync()
        users.controller.subscribe(sync)

    def get_stats(self) -> dict[str, Any]:
        return {"resources": len(self._resources), "store": self.store.get_stats()}

    async def close(self) -> None:
        """Cancel in-flight requests, then close the API client and the store."""
        if self._closed:
            return
        self._closed = True

        for resource in self._resources:
            resource.close()
        self._resources.clear()

        await self.api.close()
        self.store.close()
        logger.info("feedcache runtime closed")
