"""
feedcache — Cached Resource Fetching

Two-tier caching, stale-while-revalidate single-resource loading and
accumulating pagination for a paginated resource API.
"""

__version__ = "1.0.0"

from .api import ApiClient
from .cache import CacheStore, FilterCacheManager, build_cache_key, create_cache_store
from .config import ControllerConfig, FeedCacheConfig, get_config, load_config
from .errors import FeedCacheError, FetchError
from .fetch import FeedState, PaginatedFetchController, RequestCoordinator, SingleResourceController
from .resources import PostsFeed, UsersResource
from .runtime import FeedCacheRuntime
from .search import SearchResult, search_items

__all__ = [
    "__version__",
    "FeedCacheRuntime",
    "ApiClient",
    "CacheStore",
    "create_cache_store",
    "build_cache_key",
    "FilterCacheManager",
    "ControllerConfig",
    "FeedCacheConfig",
    "get_config",
    "load_config",
    "FeedCacheError",
    "FetchError",
    "SingleResourceController",
    "PaginatedFetchController",
    "FeedState",
    "RequestCoordinator",
    "PostsFeed",
    "UsersResource",
    "search_items",
    "SearchResult",
]
