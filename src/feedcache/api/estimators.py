"""
feedcache — Total Count Estimators

Fallbacks used when a paginated listing response carries no usable
``x-total-count`` header.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class TotalCountEstimator(ABC):
    """Strategy deriving a listing's total item count without the header."""

    @abstractmethod
    def estimate(
        self,
        page_number: int,
        page_size: int,
        item_count: int,
        filters: Mapping[str, Any],
    ) -> int:
        """
        Estimate the total number of items.

        Args:
            page_number: Page that was fetched
            page_size: Requested page size
            item_count: Items actually returned for the page
            filters: Filters applied to the listing

        Returns:
            Estimated total item count
        """


class FixedTotalEstimator(TotalCountEstimator):
    """
    Fixed totals: one for unfiltered listings and one for filtered ones.

    The defaults match the sample API (100 posts, 10 per user).
    """

    def __init__(self, default_total: int = 100, per_filter_value: int = 10):
        self.default_total = default_total
        self.per_filter_value = per_filter_value

    def estimate(self, page_number: int, page_size: int, item_count: int, filters: Mapping[str, Any]) -> int:
        if any(value is not None for value in filters.values()):
            return self.per_filter_value
        return self.default_total


class LookaheadTotalEstimator(TotalCountEstimator):
    """
    Infers the total from the page itself.

    A short page ends the listing; a full page assumes at least one more item.
    """

    def estimate(self, page_number: int, page_size: int, item_count: int, filters: Mapping[str, Any]) -> int:
        seen = (page_number - 1) * page_size + item_count
        if item_count < page_size:
            return seen
        return seen + 1
