"""
feedcache — Client-Side Search

Case-insensitive substring search over already-fetched items.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SearchResult(Generic[T]):
    """Filtered items plus search metadata."""

    items: list[T]
    match_count: int
    has_active_search: bool
    total_count: int


def post_search_fields(post: dict[str, Any]) -> tuple[str | None, ...]:
    """Searchable fields of a post: title and body."""
    return post.get("title"), post.get("body")


def search_items(
    items: Sequence[T],
    query: str | None,
    fields: Callable[[T], Iterable[str | None]],
) -> SearchResult[T]:
    """
    Filter items whose fields contain the query, ignoring case.

    A blank query is inactive and returns every item.

    Args:
        items: Items to search
        query: Search query
        fields: Extracts the searchable strings of an item

    Returns:
        SearchResult with the matching items in their original order
    """
    needle = (query or "").strip().lower()
    if not needle:
        return SearchResult(items=list(items), match_count=len(items), has_active_search=False, total_count=len(items))

    matches = [item for item in items if any(field and needle in field.lower() for field in fields(item))]
    logger.debug(f"Search {query!r} matched {len(matches)}/{len(items)} items")
    return SearchResult(items=matches, match_count=len(matches), has_active_search=True, total_count=len(items))
