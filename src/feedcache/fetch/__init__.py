"""
feedcache — Fetch Controllers

Controllers binding a fetcher to a cache key, plus the request coordinator
that keeps superseded responses from overwriting newer state.
"""

from .base import BaseFetchController
from .coordinator import RequestCoordinator, RequestHandle
from .paginated import FeedSnapshot, FeedState, PageFetcher, PaginatedFetchController
from .single import Fetcher, SingleResourceController, SingleSnapshot

__all__ = [
    "BaseFetchController",
    "RequestCoordinator",
    "RequestHandle",
    "SingleResourceController",
    "SingleSnapshot",
    "Fetcher",
    "PaginatedFetchController",
    "FeedSnapshot",
    "FeedState",
    "PageFetcher",
]
