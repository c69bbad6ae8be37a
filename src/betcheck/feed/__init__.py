"""
Results feed access.

- ResultsFeedClient: fetches authoritative match results for a date
- ResultsCache: reuses fetched result sets per (sport type, date)
- AuthoritativeMatch: one match record from the feed
"""

from betcheck.feed.base import AuthoritativeMatch, ResultsFeedError
from betcheck.feed.cache import (
    CacheStorageError,
    MemoryCacheStorage,
    ResultsCache,
    SqlCacheStorage,
    TimedCache,
)
from betcheck.feed.client import ResultsFeedClient

__all__ = [
    "AuthoritativeMatch",
    "CacheStorageError",
    "MemoryCacheStorage",
    "ResultsCache",
    "ResultsFeedClient",
    "ResultsFeedError",
    "SqlCacheStorage",
    "TimedCache",
]
