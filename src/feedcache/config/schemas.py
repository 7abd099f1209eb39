"""
feedcache — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated at startup.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class DurableBackend(str, Enum):
    """Supported durable tier backends."""

    NONE = "none"
    SQLITE = "sqlite"
    REDIS = "redis"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheConfig(BaseModel):
    """Two-tier cache store configuration."""

    namespace: str = Field(default="api_cache_", min_length=1, description="Durable tier key prefix")
    max_size: int = Field(default=1000, ge=1, description="Max entries held by the fast tier")
    durable_backend: DurableBackend = Field(default=DurableBackend.SQLITE, description="Durable tier backend")
    sqlite_path: str = Field(default="./data/feedcache.db", description="SQLite file for the durable tier")

    # Redis-specific settings (only used when durable_backend=redis)
    redis_url: str | None = Field(default=None, validate_default=True, description="Redis connection URL")
    redis_socket_timeout: float = Field(default=2.0, gt=0, description="Redis socket timeout in seconds")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None, info: Any) -> str | None:
        """Ensure redis_url is provided when the durable backend is redis."""
        backend = info.data.get("durable_backend")
        if backend == DurableBackend.REDIS and not v:
            raise ValueError("redis_url is required when durable backend is 'redis'")
        return v


class ApiConfig(BaseModel):
    """Upstream resource API configuration."""

    base_url: str = Field(default="https://jsonplaceholder.typicode.com", description="API base URL")
    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")
    headers: dict[str, str] = Field(
        default_factory=lambda: {"Content-Type": "application/json"},
        description="Headers sent with every request",
    )
    default_total: int = Field(default=100, ge=0, description="Assumed total when x-total-count is missing")
    per_filter_total: int = Field(
        default=10, ge=0, description="Assumed total for a filtered listing when x-total-count is missing"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base_url so endpoint paths can be appended."""
        return v.rstrip("/")


class ControllerConfig(BaseModel):
    """Per-instantiation fetch controller configuration."""

    cache_key: str = Field(..., min_length=1, description="Cache key owned by the controller")
    ttl: float = Field(default=300.0, gt=0, description="Entry time-to-live in seconds")
    enabled: bool = Field(default=True, description="Whether the controller reads cache and fetches")
    use_durable_tier: bool = Field(default=True, description="Whether entries are persisted to the durable tier")
    stale_threshold: float = Field(default=30.0, ge=0, description="Age in seconds after which data is revalidated")
    page_size: int = Field(default=10, ge=1, description="Items per page (paginated controllers)")
    max_retries: int = Field(default=3, ge=1, description="Consecutive failures that stop automatic fetches")
    request_timeout: float | None = Field(default=None, gt=0, description="Per-request timeout in seconds")

    model_config = ConfigDict(frozen=True)


class ControllerDefaults(BaseModel):
    """Defaults applied to controllers created by the runtime."""

    ttl: float = Field(default=300.0, gt=0)
    stale_threshold: float = Field(default=30.0, ge=0)
    page_size: int = Field(default=10, ge=1)
    max_retries: int = Field(default=3, ge=1)
    use_durable_tier: bool = Field(default=True)

    def for_key(self, cache_key: str, **overrides: Any) -> ControllerConfig:
        """Build a ControllerConfig for a key from these defaults."""
        values: dict[str, Any] = {
            "cache_key": cache_key,
            "ttl": self.ttl,
            "stale_threshold": self.stale_threshold,
            "page_size": self.page_size,
            "max_retries": self.max_retries,
            "use_durable_tier": self.use_durable_tier,
        }
        values.update(overrides)
        return ControllerConfig(**values)


class FeedCacheConfig(BaseModel):
    """Root configuration for feedcache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    json_logs: bool = Field(default=False, description="Emit structured JSON log lines")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    controllers: ControllerDefaults = Field(default_factory=ControllerDefaults)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
