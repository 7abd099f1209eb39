"""
feedcache — Cache Tier Backends

Exports the fast tier and the built-in durable tier.

Redis durable tier is lazy-loaded via factory.py to avoid import overhead.
"""

from .memory import MemoryTier
from .sqlite import SQLiteStorage

__all__ = [
    "MemoryTier",
    "SQLiteStorage",
]
