"""
feedcache — Users Resource and Client Search Tests
"""

from types import SimpleNamespace
from typing import Any

import pytest

from feedcache.cache.store import CacheStore
from feedcache.resources.users import USERS_CACHE_KEY, UsersResource
from feedcache.search import search_items

API_USERS = [
    {"id": 1, "name": "Leanne Graham", "username": "Bret", "email": "Sincere@april.biz"},
    {"id": 2, "name": "Ervin Howell", "username": "Antonette", "email": "Shanna@melissa.tv"},
]


@pytest.fixture
def users_api() -> SimpleNamespace:
    calls = {"count": 0}

    async def fetch_users() -> list[dict[str, Any]]:
        calls["count"] += 1
        return [dict(user) for user in API_USERS]

    return SimpleNamespace(fetch_users=fetch_users, calls=calls)


class TestUsersResource:
    async def test_load_transforms_users(self, users_api, store: CacheStore) -> None:
        resource = UsersResource(users_api, store)  # type: ignore[arg-type]

        assert resource.load() == []
        assert resource.is_loading is True
        await resource.wait()

        assert [(u.id, u.initials) for u in resource.users] == [(1, "LG"), (2, "EH")]
        assert resource.get(2).name == "Ervin Howell"  # type: ignore[union-attr]
        assert resource.get(99) is None
        assert resource.user_ids == [1, 2]

    async def test_cached_under_users_key(self, users_api, store: CacheStore) -> None:
        first = UsersResource(users_api, store)  # type: ignore[arg-type]
        first.load()
        await first.wait()

        second = UsersResource(users_api, store)  # type: ignore[arg-type]

        assert store.get(USERS_CACHE_KEY) is not None
        assert [u.name for u in second.users] == ["Leanne Graham", "Ervin Howell"]
        second.load()
        assert users_api.calls["count"] == 1

    async def test_invalidate_refetches(self, users_api, store: CacheStore) -> None:
        resource = UsersResource(users_api, store)  # type: ignore[arg-type]
        resource.load()
        await resource.wait()

        await resource.invalidate()

        assert users_api.calls["count"] == 2
        assert resource.error is None


class TestSearchItems:
    def test_case_insensitive_multi_field(self) -> None:
        items = [{"a": "Alpha", "b": "x"}, {"a": "beta", "b": "ALPHABET"}, {"a": "gamma", "b": None}]

        result = search_items(items, "alpha", lambda item: (item["a"], item["b"]))

        assert result.items == items[:2]
        assert result.match_count == 2
        assert result.total_count == 3
        assert result.has_active_search is True

    def test_empty_query_returns_everything(self) -> None:
        items = [{"a": "x"}]

        result = search_items(items, "", lambda item: (item["a"],))

        assert result.items == items
        assert result.has_active_search is False
        assert result.match_count == 1

    def test_none_query(self) -> None:
        result = search_items([], None, lambda item: ())

        assert result.items == []
        assert result.total_count == 0
