"""
feedcache — Memory Tier

In-process fast tier with LRU eviction.
Entries carry their own expiry metadata; expiry decisions belong to the
CacheStore so both tiers are purged together.
"""

import logging
from collections import OrderedDict
from typing import Any

from ..entry import PagedEntry, SingleEntry

logger = logging.getLogger(__name__)


class MemoryTier:
    """
    In-memory fast tier with LRU eviction.

    Features:
    - LRU eviction when max_size is reached
    - O(1) get/set/delete operations
    - Hit/miss statistics
    """

    def __init__(self, max_size: int = 1000):
        """
        Initialize the memory tier.

        Args:
            max_size: Maximum number of entries (LRU eviction when exceeded)
        """
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size

        self._entries: OrderedDict[str, SingleEntry | PagedEntry] = OrderedDict()

        # Stats
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> SingleEntry | PagedEntry | None:
        """Retrieve an entry, marking it as recently used."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry

    def set(self, key: str, entry: SingleEntry | PagedEntry) -> None:
        """Store an entry, evicting the least recently used one when full."""
        if key not in self._entries and len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicted key from memory tier: {evicted_key}")

        self._entries[key] = entry
        self._entries.move_to_end(key)
        self._sets += 1

    def delete(self, key: str) -> bool:
        """Delete an entry. Returns False if the key was absent."""
        if key in self._entries:
            del self._entries[key]
            self._deletes += 1
            return True
        return False

    def clear(self) -> int:
        """Remove every entry and return how many were removed."""
        size = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared {size} entries from memory tier")
        return size

    def get_stats(self) -> dict[str, Any]:
        """Get tier statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "backend": "memory",
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "sets": self._sets,
            "deletes": self._deletes,
            "evictions": self._evictions,
        }
