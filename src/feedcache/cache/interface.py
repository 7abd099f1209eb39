"""
feedcache — Durable Storage Interface

Defines the abstract interface that every durable tier backend implements.
Values are opaque strings (serialized cache entries) keyed by the full,
namespace-prefixed key.
"""

from abc import ABC, abstractmethod


class DurableStorage(ABC):
    """
    Abstract base class for durable tier backends.

    Implementations raise StorageUnavailableError for any backend failure so
    the CacheStore can degrade to memory-only operation.
    """

    name: str = "durable"

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """
        Read a stored value.

        Args:
            key: Full (prefixed) key

        Returns:
            Stored value, or None if absent
        """

    @abstractmethod
    def set_item(self, key: str, value: str, ttl: float | None = None) -> None:
        """
        Write a value.

        Args:
            key: Full (prefixed) key
            value: Serialized entry
            ttl: Optional hint in seconds for backends with native expiry
        """

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a value. Removing an absent key is not an error."""

    @abstractmethod
    def keys(self, prefix: str) -> list[str]:
        """List stored keys starting with ``prefix``."""

    def close(self) -> None:
        """Release backend resources. Should be called during shutdown."""

    def remove_prefix(self, prefix: str) -> int:
        """
        Remove every key starting with ``prefix``.

        Default implementation lists then removes each key.
        Backends can override for better performance.

        Returns:
            Number of keys removed
        """
        count = 0
        for key in self.keys(prefix):
            self.remove_item(key)
            count += 1
        return count
