"""
feedcache — Error Hierarchy Tests
"""

import pytest

from feedcache.errors import (
    CacheError,
    ConfigurationError,
    ErrorCode,
    FeedCacheError,
    FetchError,
    HttpFailureError,
    MalformedResponseError,
    NetworkFailureError,
    RequestTimeoutError,
    StorageUnavailableError,
    SupersededError,
    extract_error_code,
)


@pytest.mark.parametrize(
    "error,expected",
    [
        (RequestTimeoutError("https://api.test/posts", 2.0), ErrorCode.REQUEST_TIMEOUT),
        (NetworkFailureError("https://api.test/posts", "refused"), ErrorCode.NETWORK_FAILURE),
        (HttpFailureError("https://api.test/posts", 404), ErrorCode.HTTP_FAILURE),
        (MalformedResponseError("bad"), ErrorCode.MALFORMED_RESPONSE),
        (FetchError("wrapped"), ErrorCode.FETCH_FAILURE),
        (StorageUnavailableError("sqlite", "set"), ErrorCode.STORAGE_UNAVAILABLE),
        (CacheError("cache"), ErrorCode.CACHE_FAILURE),
        (SupersededError("users"), ErrorCode.SUPERSEDED),
        (ConfigurationError("config"), ErrorCode.INVALID_CONFIGURATION),
        (ValueError("other"), ErrorCode.INTERNAL_ERROR),
    ],
)
def test_extract_error_code(error: Exception, expected: ErrorCode) -> None:
    assert extract_error_code(error) == expected


def test_timeout_is_a_network_failure() -> None:
    error = RequestTimeoutError("https://api.test/users", 1.5)

    assert isinstance(error, NetworkFailureError)
    assert error.status_code == 504
    assert error.details == {"url": "https://api.test/users", "reason": "request timeout after 1.5s", "timeout": 1.5}


def test_to_dict() -> None:
    error = HttpFailureError("https://api.test/posts", 500)

    assert error.to_dict() == {
        "error": "HttpFailureError",
        "message": "HTTP error! status: 500",
        "details": {"url": "https://api.test/posts", "status": 500},
    }
    assert isinstance(error, FeedCacheError)


def test_storage_error_details_merge() -> None:
    error = StorageUnavailableError("redis", "get", {"key": "api_cache_users"})

    assert error.details == {"key": "api_cache_users", "backend": "redis", "operation": "get"}
    assert "redis" in error.message
