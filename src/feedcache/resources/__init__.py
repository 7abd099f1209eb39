"""
feedcache — Resources

Application-level resources built on the fetch controllers.
"""

from .posts import PostsFeed
from .users import USERS_CACHE_KEY, UsersResource

__all__ = [
    "PostsFeed",
    "UsersResource",
    "USERS_CACHE_KEY",
]
