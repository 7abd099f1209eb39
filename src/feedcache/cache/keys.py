"""
feedcache — Cache Key Policy

Deterministic cache keys for (resource, page size, filter set) combinations
and the cross-filter invalidation rules applied when a discrete filter
dimension changes.

Key template: ``{resource}_{page_size}_{filter_signature}``

    >>> build_cache_key("posts", 10, {"owner": 7})
    'posts_10_owner=7'
    >>> build_cache_key("posts", 10, {"owner": None})
    'posts_10_owner=all'
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

if TYPE_CHECKING:
    from .store import CacheStore

logger = logging.getLogger(__name__)

ALL_TOKEN = "all"
NO_FILTERS_TOKEN = "-"

# quote() never emits a raw apostrophe, so this cannot be produced by a real value
_LITERAL_ALL = "'all'"


def _escape(text: str) -> str:
    """Percent-encode a key component, including the '_' field separator."""
    return quote(text, safe="").replace("_", "%5F")


def _encode_value(value: Any) -> str:
    if value is None:
        return ALL_TOKEN
    encoded = _escape(str(value))
    if encoded == ALL_TOKEN:
        return _LITERAL_ALL
    return encoded


def filter_signature(filters: Mapping[str, Any] | None) -> str:
    """
    Build a stable, order-independent encoding of the active filter dimensions.

    A dimension set to None is unconstrained and encodes as ``all``.

    Args:
        filters: Mapping of dimension name to value (or None)

    Returns:
        Signature such as ``owner=7`` or ``owner=all,tag=news``
    """
    if not filters:
        return NO_FILTERS_TOKEN
    parts = [f"{_escape(name)}={_encode_value(filters[name])}" for name in sorted(filters)]
    return ",".join(parts)


def build_cache_key(resource: str, page_size: int, filters: Mapping[str, Any] | None = None) -> str:
    """
    Build the cache key for a resource listing.

    Args:
        resource: Resource name (e.g. "posts")
        page_size: Items per page
        filters: Active filter dimensions

    Returns:
        Cache key string

    Raises:
        ValueError: If resource is empty or page_size is not positive
    """
    if not resource:
        raise ValueError("resource must be a non-empty string")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    return f"{_escape(resource)}_{int(page_size)}_{filter_signature(filters)}"


class FilterCacheManager:
    """
    Applies cross-filter invalidation for one discrete filter dimension.

    Rules, for a transition ``previous -> current``:
    - selecting a specific value deletes the unconstrained entry
    - leaving a specific value deletes the entries of every other known value
      (the value being left and the value being selected are kept)

    The set of known values is supplied by the caller, never inferred.
    """

    def __init__(
        self,
        store: CacheStore,
        resource: str,
        page_size: int,
        dimension: str,
        known_values: Iterable[Hashable] = (),
        base_filters: Mapping[str, Any] | None = None,
        initial: Hashable | None = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Cache store holding the entries
            resource: Resource name used in keys
            page_size: Page size used in keys
            dimension: Filter dimension this manager watches (e.g. "owner")
            known_values: Bounded enumeration of the dimension's values
            base_filters: Other filter dimensions held constant
            initial: Value selected before the first transition
        """
        self.store = store
        self.resource = resource
        self.page_size = page_size
        self.dimension = dimension
        self.base_filters = dict(base_filters or {})
        self._known_values: list[Hashable] = list(dict.fromkeys(known_values))
        self._current = initial

    @property
    def current(self) -> Hashable | None:
        return self._current

    @property
    def known_values(self) -> list[Hashable]:
        return list(self._known_values)

    def set_known_values(self, values: Iterable[Hashable]) -> None:
        self._known_values = list(dict.fromkeys(values))

    def key_for(self, value: Hashable | None) -> str:
        filters = dict(self.base_filters)
        filters[self.dimension] = value
        return build_cache_key(self.resource, self.page_size, filters)

    def select(self, value: Hashable | None) -> str:
        """
        Transition the dimension to ``value`` and return its cache key.

        Re-selecting the current value deletes nothing.
        """
        previous = self._current
        self._current = value

        if value == previous:
            return self.key_for(value)

        removed: list[str] = []

        if value is not None:
            key = self.key_for(None)
            self.store.delete(key)
            removed.append(key)

        if previous is not None:
            for known in self._known_values:
                if known == previous or known == value:
                    continue
                key = self.key_for(known)
                self.store.delete(key)
                removed.append(key)

        logger.debug(
            f"Filter '{self.dimension}' changed {previous!r} -> {value!r}, invalidated {len(removed)} key(s)",
            extra={"dimension": self.dimension, "previous": previous, "current": value, "removed": removed},
        )
        return self.key_for(value)

    def clear_all(self) -> int:
        """Delete the unconstrained entry and every known value's entry."""
        keys = [self.key_for(None)] + [self.key_for(known) for known in self._known_values]
        for key in keys:
            self.store.delete(key)
        logger.info(f"Cleared {len(keys)} cache key(s) for filter '{self.dimension}'")
        return len(keys)
