"""
feedcache — Core Error Types

Defines the exception hierarchy for the fetch and cache layer.
All exceptions inherit from FeedCacheError so callers can render a single
error affordance for anything the controllers surface.

Propagation rules:
- StorageUnavailableError is absorbed by the CacheStore (logged, never raised)
- SupersededError is swallowed by the request coordinator
- FetchError subclasses become a controller's ``error`` state
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for structured error reporting."""

    # Upstream errors
    NETWORK_FAILURE = "NETWORK_FAILURE"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    HTTP_FAILURE = "HTTP_FAILURE"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    FETCH_FAILURE = "FETCH_FAILURE"

    # Cache errors
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    CACHE_FAILURE = "CACHE_FAILURE"

    # Coordination
    SUPERSEDED = "SUPERSEDED"

    # Configuration
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class FeedCacheError(Exception):
    """Base exception for all feedcache errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for display or logging."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(FeedCacheError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class CacheError(FeedCacheError):
    """Base exception for cache-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class StorageUnavailableError(CacheError):
    """Raised by a durable storage tier when a read or write fails."""

    def __init__(self, backend: str, operation: str, details: dict[str, Any] | None = None):
        message = f"Durable storage '{backend}' unavailable during {operation}"
        error_details = details or {}
        error_details.update({"backend": backend, "operation": operation})
        super().__init__(message, error_details)
        self.backend = backend
        self.operation = operation


class FetchError(FeedCacheError):
    """Base exception for upstream fetch failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None, status_code: int = 502):
        super().__init__(message, details, status_code=status_code)


class NetworkFailureError(FetchError):
    """Raised when the transport fails before a response is received."""

    def __init__(self, url: str, reason: str):
        message = f"Network failure requesting {url}: {reason}"
        super().__init__(message, {"url": url, "reason": reason})
        self.url = url


class RequestTimeoutError(NetworkFailureError):
    """Raised when a request exceeds its time budget."""

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"request timeout after {timeout}s")
        self.details["timeout"] = timeout
        self.status_code = 504
        self.timeout = timeout


class HttpFailureError(FetchError):
    """Raised when the upstream answers with a non-success status."""

    def __init__(self, url: str, status: int):
        message = f"HTTP error! status: {status}"
        super().__init__(message, {"url": url, "status": status})
        self.url = url
        self.status = status


class MalformedResponseError(FetchError):
    """Raised when a response body fails structural validation."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=502)


class SupersededError(FeedCacheError):
    """Raised internally when a newer request replaced the one completing."""

    def __init__(self, target: str):
        super().__init__(f"Request for '{target}' was superseded", {"target": target}, status_code=499)
        self.target = target


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Matching ErrorCode (most specific class first)
    """
    if isinstance(error, RequestTimeoutError):
        return ErrorCode.REQUEST_TIMEOUT

    if isinstance(error, NetworkFailureError):
        return ErrorCode.NETWORK_FAILURE

    if isinstance(error, HttpFailureError):
        return ErrorCode.HTTP_FAILURE

    if isinstance(error, MalformedResponseError):
        return ErrorCode.MALFORMED_RESPONSE

    if isinstance(error, FetchError):
        return ErrorCode.FETCH_FAILURE

    if isinstance(error, StorageUnavailableError):
        return ErrorCode.STORAGE_UNAVAILABLE

    if isinstance(error, CacheError):
        return ErrorCode.CACHE_FAILURE

    if isinstance(error, SupersededError):
        return ErrorCode.SUPERSEDED

    if isinstance(error, ConfigurationError):
        return ErrorCode.INVALID_CONFIGURATION

    return ErrorCode.INTERNAL_ERROR
