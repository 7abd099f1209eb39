"""
feedcache — Resource API Client

Async HTTP client for the posts/users resource API.

- Validated with Pydantic (Post, ApiUser) before anything is cached
- Transport problems, non-2xx statuses and malformed bodies are mapped onto
  the FetchError hierarchy
- Pagination metadata is computed from the ``x-total-count`` header, with a
  pluggable estimator when the header is missing

Usage:
    async with ApiClient(get_config().api) as api:
        page = await api.fetch_page(1, 10, {"owner": 3})
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from ..config.schemas import ApiConfig
from ..errors import HttpFailureError, MalformedResponseError, NetworkFailureError, RequestTimeoutError
from ..models import ApiUser, Page, PaginationMeta, Post
from .estimators import FixedTotalEstimator, TotalCountEstimator

logger = logging.getLogger(__name__)

POSTS_ENDPOINT = "/posts"
USERS_ENDPOINT = "/users"
TOTAL_COUNT_HEADER = "x-total-count"

# Filter dimension -> query parameter understood by the API
FILTER_PARAMS = {"owner": "userId"}


class ApiClient:
    """Client for the resource API."""

    def __init__(
        self,
        config: ApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        estimator: TotalCountEstimator | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: API configuration (defaults when omitted)
            transport: Optional httpx transport (tests use httpx.MockTransport)
            estimator: Total count fallback (FixedTotalEstimator from config by default)
        """
        self.config = config or ApiConfig()
        self.estimator = estimator or FixedTotalEstimator(
            default_total=self.config.default_total,
            per_filter_value=self.config.per_filter_total,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers=self.config.headers,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        url = f"{self.config.base_url}{path}"
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"Request to {url} timed out", extra={"url": url, "timeout": self.config.timeout})
            raise RequestTimeoutError(url, self.config.timeout) from e
        except httpx.HTTPError as e:
            logger.warning(f"Request to {url} failed: {e}", extra={"url": url, "error": str(e)})
            raise NetworkFailureError(url, str(e) or type(e).__name__) from e

        if not response.is_success:
            logger.warning(
                f"Request to {url} returned HTTP {response.status_code}",
                extra={"url": str(response.request.url), "status": response.status_code},
            )
            raise HttpFailureError(str(response.request.url), response.status_code)

        return response

    @staticmethod
    def _parse_array(response: httpx.Response, model: type[BaseModel], label: str) -> list[dict[str, Any]]:
        """Decode a JSON array body and shape-check every element."""
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Invalid response format: body is not JSON ({label})",
                {"url": str(response.request.url)},
            ) from e

        if not isinstance(data, list):
            raise MalformedResponseError(
                f"Invalid response format: expected array of {label}",
                {"url": str(response.request.url), "type": type(data).__name__},
            )

        for index, item in enumerate(data):
            try:
                model.model_validate(item)
            except ValidationError as e:
                raise MalformedResponseError(
                    f"Invalid {label[:-1]} structure at index {index}",
                    {"index": index, "errors": e.errors(include_url=False)},
                ) from e

        return data

    def _total_count(
        self,
        response: httpx.Response,
        page_number: int,
        page_size: int,
        item_count: int,
        filters: Mapping[str, Any],
    ) -> int:
        header = response.headers.get(TOTAL_COUNT_HEADER)
        if header is not None:
            try:
                total = int(header)
                if total >= 0:
                    return total
            except ValueError:
                pass
            logger.debug(f"Ignoring unusable {TOTAL_COUNT_HEADER} header: {header!r}")
        return self.estimator.estimate(page_number, page_size, item_count, filters)

    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Mapping[str, Any] | None = None,
    ) -> Page:
        """
        Fetch one page of posts.

        Args:
            page_number: 1-based page number
            page_size: Items per page
            filters: Filter dimensions; None values are unconstrained

        Returns:
            Page with items and pagination metadata

        Raises:
            FetchError: On transport, status or format problems
        """
        filters = dict(filters or {})
        params: dict[str, Any] = {"_page": page_number, "_limit": page_size}
        for dimension, value in filters.items():
            if value is not None:
                params[FILTER_PARAMS.get(dimension, dimension)] = value

        logger.debug(f"Fetching posts page {page_number}", extra={"params": params})
        response = await self._get(POSTS_ENDPOINT, params=params)
        items = self._parse_array(response, Post, "posts")

        total = self._total_count(response, page_number, page_size, len(items), filters)
        pagination = PaginationMeta.compute(page_number, page_size, total)

        logger.debug(
            f"Fetched {len(items)} posts (page {page_number}/{pagination.total_pages}, has_more={pagination.has_more})",
            extra={"count": len(items), "total": total, "page": page_number},
        )
        return Page(items=items, pagination=pagination)

    async def fetch_posts(self) -> list[dict[str, Any]]:
        """Fetch every post in one request."""
        response = await self._get(POSTS_ENDPOINT)
        return self._parse_array(response, Post, "posts")

    async def fetch_users(self) -> list[dict[str, Any]]:
        """Fetch every user in one request."""
        response = await self._get(USERS_ENDPOINT)
        users = self._parse_array(response, ApiUser, "users")
        logger.debug(f"Fetched {len(users)} users")
        return users
