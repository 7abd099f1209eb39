"""
feedcache — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config, reset_config
from .schemas import (
    ApiConfig,
    CacheConfig,
    ControllerConfig,
    ControllerDefaults,
    DurableBackend,
    Environment,
    FeedCacheConfig,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    # Main config
    "FeedCacheConfig",
    # Enums
    "Environment",
    "DurableBackend",
    "LogLevel",
    # Config sections
    "CacheConfig",
    "ApiConfig",
    "ControllerConfig",
    "ControllerDefaults",
]
