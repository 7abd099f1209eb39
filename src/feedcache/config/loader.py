"""
feedcache — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import FeedCacheConfig

logger = logging.getLogger(__name__)

_config_instance: FeedCacheConfig | None = None


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> FeedCacheConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated FeedCacheConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    # Durable tier: Redis if REDIS_URL is set, else a local SQLite file
    redis_url = os.getenv("REDIS_URL")
    durable_backend = "redis" if redis_url else "sqlite"

    try:
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "json_logs": _env_bool("LOG_JSON", "false"),
            "cache": {
                "namespace": os.getenv("CACHE_NAMESPACE", "api_cache_"),
                "max_size": int(os.getenv("CACHE_MAX_SIZE", "1000")),
                "durable_backend": os.getenv("CACHE_DURABLE_BACKEND", durable_backend),
                "sqlite_path": os.getenv("CACHE_SQLITE_PATH", "./data/feedcache.db"),
                "redis_url": redis_url,
                "redis_socket_timeout": float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0")),
            },
            "api": {
                "base_url": os.getenv("API_BASE_URL", "https://jsonplaceholder.typicode.com"),
                "timeout": float(os.getenv("API_TIMEOUT_SECONDS", "10.0")),
                "default_total": int(os.getenv("API_DEFAULT_TOTAL", "100")),
                "per_filter_total": int(os.getenv("API_PER_FILTER_TOTAL", "10")),
            },
            "controllers": {
                "ttl": float(os.getenv("CACHE_TTL_SECONDS", "300")),
                "stale_threshold": float(os.getenv("CACHE_STALE_SECONDS", "30")),
                "page_size": int(os.getenv("PAGE_SIZE", "10")),
                "max_retries": int(os.getenv("FETCH_MAX_RETRIES", "3")),
                "use_durable_tier": _env_bool("CACHE_USE_DURABLE", "true"),
            },
        }
    except ValueError as e:
        logger.error(f"Invalid numeric environment value: {e}", extra={"error": str(e)})
        raise ConfigurationError(
            f"Invalid numeric environment value: {e}",
            details={"error": str(e)},
        ) from e

    try:
        _config_instance = FeedCacheConfig(**config_dict)  # type: ignore[arg-type]
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment})",
            extra={
                "environment": _config_instance.environment,
                "durable_backend": _config_instance.cache.durable_backend,
            },
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> FeedCacheConfig:
    """
    Get the current configuration instance, loading it on first access.

    Returns:
        Current FeedCacheConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> FeedCacheConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded FeedCacheConfig instance
    """
    return load_config(env_file=env_file, reload=True)


def reset_config() -> None:
    """Forget the loaded configuration (tests)."""
    global _config_instance
    _config_instance = None
