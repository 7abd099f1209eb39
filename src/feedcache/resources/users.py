"""
feedcache — Users Resource

The user list, loaded as one unit with stale-while-revalidate caching and
exposed as User models with derived initials.
"""

import asyncio
import logging
from typing import Any

from ..api.client import ApiClient
from ..cache.store import CacheStore
from ..config.schemas import ControllerConfig
from ..errors import FeedCacheError
from ..fetch.single import SingleResourceController
from ..models import ApiUser, User

logger = logging.getLogger(__name__)

USERS_CACHE_KEY = "users"


class UsersResource:
    """Users backed by a SingleResourceController keyed ``users``."""

    def __init__(self, api: ApiClient, store: CacheStore, config: ControllerConfig | None = None):
        self.config = config or ControllerConfig(cache_key=USERS_CACHE_KEY)
        self.controller = SingleResourceController(api.fetch_users, self.config, store)

    @property
    def users(self) -> list[User]:
        payload: list[dict[str, Any]] = self.controller.payload or []
        return [User.from_api(ApiUser.model_validate(raw)) for raw in payload]

    @property
    def user_ids(self) -> list[int]:
        return [user.id for user in self.users]

    @property
    def is_loading(self) -> bool:
        return self.controller.is_loading

    @property
    def error(self) -> FeedCacheError | None:
        return self.controller.error

    def get(self, user_id: int) -> User | None:
        return next((user for user in self.users if user.id == user_id), None)

    def load(self) -> list[User]:
        self.controller.load()
        return self.users

    def refetch(self) -> asyncio.Task[None]:
        return self.controller.refetch()

    def invalidate(self) -> asyncio.Task[None]:
        return self.controller.invalidate()

    async def wait(self) -> None:
        await self.controller.wait()

    def close(self) -> None:
        self.controller.close()
