"""
feedcache — Cache Module

Two-tier cache store, tagged cache entries and the cache key policy.

Usage:
    from feedcache.cache import create_cache_store, build_cache_key

    store = create_cache_store()
    key = build_cache_key("posts", 10, {"owner": None})
    entry = store.get(key)
"""

from .backends import MemoryTier, SQLiteStorage
from .entry import CacheEntry, PagedEntry, SingleEntry, dump_entry, load_entry
from .factory import create_cache_store, create_durable_storage
from .interface import DurableStorage
from .keys import FilterCacheManager, build_cache_key, filter_signature
from .store import CacheStore

__all__ = [
    # Store
    "CacheStore",
    "create_cache_store",
    "create_durable_storage",
    # Tiers
    "DurableStorage",
    "MemoryTier",
    "SQLiteStorage",
    # Entries
    "CacheEntry",
    "SingleEntry",
    "PagedEntry",
    "dump_entry",
    "load_entry",
    # Key policy
    "build_cache_key",
    "filter_signature",
    "FilterCacheManager",
]
