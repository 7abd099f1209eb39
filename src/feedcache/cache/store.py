"""
feedcache — Two-Tier Cache Store

Combines the in-process fast tier with an optional durable tier.

Contract:
- get() reads the durable tier first, promotes unexpired entries into the
  fast tier, purges expired entries from both tiers, and falls back to the
  fast tier when the durable tier has nothing (or is unavailable)
- set() always writes the fast tier; durable failures are logged and
  absorbed, never raised to the caller
- after a failed durable write the key is served from the fast tier only
  (its durable copy is older) until a later durable write succeeds
- clear() only touches keys under this store's namespace prefix

All operations are synchronous. The store is shared by every controller of
an application and owned by the runtime (see feedcache.runtime).
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from .backends.memory import MemoryTier
from .entry import PagedEntry, SingleEntry, dump_entry, load_entry
from .interface import DurableStorage

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheStore:
    """
    Two-tier key/value store for cache entries.

    The fast tier stays authoritative for the session when the durable tier
    is absent, disabled, or failing.
    """

    def __init__(
        self,
        fast: MemoryTier | None = None,
        durable: DurableStorage | None = None,
        namespace: str = "api_cache_",
        clock: Clock = time.time,
    ):
        """
        Initialize the store.

        Args:
            fast: In-process tier (a fresh MemoryTier if omitted)
            durable: Durable tier, or None for memory-only operation
            namespace: Prefix for every durable tier key
            clock: Time source in epoch seconds
        """
        self.fast = fast if fast is not None else MemoryTier()
        self.durable = durable
        self.namespace = namespace
        self.clock = clock

        self._hits = 0
        self._misses = 0
        self._expired = 0
        self._durable_failures = 0
        # Keys whose durable copy is older than the fast tier's entry
        self._fast_only: set[str] = set()

    @property
    def degraded(self) -> bool:
        """True once a durable tier operation has failed."""
        return self._durable_failures > 0

    def now(self) -> float:
        return self.clock()

    def _durable_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _durable_failed(self, operation: str, key: str, error: Exception) -> None:
        self._durable_failures += 1
        logger.warning(
            f"Durable tier {operation} failed for '{key}', continuing memory-only: {error}",
            extra={
                "key": key,
                "operation": operation,
                "backend": getattr(self.durable, "name", "durable"),
                "error": str(error),
            },
        )

    def _read_durable(self, key: str) -> SingleEntry | PagedEntry | None:
        if self.durable is None:
            return None

        durable_key = self._durable_key(key)
        try:
            raw = self.durable.get_item(durable_key)
        except Exception as e:
            self._durable_failed("get", key, e)
            return None

        if raw is None:
            return None

        try:
            return load_entry(raw)
        except ValidationError as e:
            logger.warning(
                f"Discarding undecodable durable entry for '{key}': {e.error_count()} error(s)",
                extra={"key": key, "errors": e.errors()},
            )
            self._remove_durable(key)
            return None

    def _remove_durable(self, key: str) -> None:
        if self.durable is None:
            return
        try:
            self.durable.remove_item(self._durable_key(key))
        except Exception as e:
            self._durable_failed("delete", key, e)

    def get(self, key: str, durable: bool = True) -> SingleEntry | PagedEntry | None:
        """
        Retrieve an unexpired entry.

        Args:
            key: Cache key
            durable: Consult the durable tier (False = fast tier only)

        Returns:
            The entry, or None if absent or expired
        """
        now = self.now()

        if durable and key not in self._fast_only:
            entry = self._read_durable(key)
            if entry is not None:
                if entry.is_expired(now):
                    self._expire(key)
                    return None
                # Decoded from JSON, so this is already a private copy
                self.fast.set(key, entry)
                self._hits += 1
                return entry

        entry = self.fast.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(now):
            self._expire(key, durable=durable)
            return None

        self._hits += 1
        return entry

    def _expire(self, key: str, durable: bool = True) -> None:
        self._expired += 1
        self._misses += 1
        logger.debug(f"Cache entry expired: {key}")
        self.fast.delete(key)
        if durable:
            self._remove_durable(key)

    def set(self, key: str, entry: SingleEntry | PagedEntry, durable: bool = True) -> None:
        """
        Store an entry.

        Never raises for durable tier problems; the fast tier write always happens.

        Args:
            key: Cache key
            entry: Entry to store
            durable: Also persist to the durable tier
        """
        self.fast.set(key, entry)

        if not durable or self.durable is None:
            return

        try:
            ttl = max(entry.expires_at - self.now(), 0.001)
            self.durable.set_item(self._durable_key(key), dump_entry(entry), ttl=ttl)
        except Exception as e:
            self._durable_failed("set", key, e)
            self._fast_only.add(key)
            self._remove_durable(key)
            return
        self._fast_only.discard(key)

    def delete(self, key: str) -> None:
        """Delete a key from both tiers, ignoring durable tier errors."""
        self.fast.delete(key)
        self._fast_only.discard(key)
        self._remove_durable(key)

    def clear(self) -> None:
        """Remove every entry of this namespace from both tiers."""
        self.fast.clear()
        self._fast_only.clear()
        if self.durable is None:
            return
        try:
            removed = self.durable.remove_prefix(self.namespace)
            logger.info(f"Cleared {removed} durable entries under prefix '{self.namespace}'")
        except Exception as e:
            self._durable_failed("clear", self.namespace, e)

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
        return {
            "namespace": self.namespace,
            "durable_backend": getattr(self.durable, "name", None),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "expired": self._expired,
            "durable_failures": self._durable_failures,
            "degraded": self.degraded,
            "fast": self.fast.get_stats(),
        }

    def close(self) -> None:
        """Close the durable tier and release resources."""
        if self.durable is None:
            return
        try:
            self.durable.close()
        except Exception as e:
            logger.error(f"Error closing durable tier: {e}", extra={"error": str(e)}, exc_info=True)
