"""
feedcache — Resource API

HTTP client for the upstream resource API and total-count estimators.
"""

from .client import ApiClient
from .estimators import FixedTotalEstimator, LookaheadTotalEstimator, TotalCountEstimator

__all__ = [
    "ApiClient",
    "TotalCountEstimator",
    "FixedTotalEstimator",
    "LookaheadTotalEstimator",
]
