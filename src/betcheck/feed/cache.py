"""
Time-limited caching of results feed responses.

The feed is slow and rate-limited, and a day's results barely change once
the matches are over, so each (sport type, date) result set is fetched once
and reused until it expires. Expiry is purely time based.

Two pieces live here:
- TimedCache: a small generic in-process cache with an injected clock
- ResultsCache: the feed cache, with a pluggable storage backend
  (MemoryCacheStorage or SqlCacheStorage)

Failure handling:
- A feed failure (ResultsFeedError, an httpx error or a timeout) yields an
  empty list and nothing is cached, so the next request tries again.
- A storage write failure is logged, stale entries are pruned to free
  space, and the freshly fetched data is still returned.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

import httpx
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from betcheck.config import settings
from betcheck.feed.base import AuthoritativeMatch, ResultsFeedError
from betcheck.parsers.dates import to_api_date

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
CacheKey = tuple[str, str]
Fetcher = Callable[[str, str], Awaitable[list[AuthoritativeMatch]]]

T = TypeVar("T")


class CacheStorageError(Exception):
    """Raised by a storage backend when an entry cannot be written or read."""


# =============================================================================
# Generic timed cache
# =============================================================================


class TimedCache(Generic[T]):
    """
    In-process key/value cache whose entries expire after a fixed time.

    Expired entries are dropped when they are next looked up.

    Usage:
        dates = TimedCache(ttl_seconds=60)
        value = dates.get_or_set(("tennis", "normal"), lambda: load_dates())
    """

    def __init__(self, ttl_seconds: float, clock: Clock = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, T]] = {}

    def get(self, key: Hashable) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: T) -> None:
        self._entries[key] = (self._clock(), value)

    def get_or_set(self, key: Hashable, factory: Callable[[], T]) -> T:
        value = self.get(key)
        if value is None:
            value = factory()
            self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Storage backends
# =============================================================================


@dataclass
class CachedResultSet:
    """A fetched result set and the clock time it was fetched at."""

    sport_type: str
    api_date: str
    matches: list[AuthoritativeMatch] = field(default_factory=list)
    fetched_at: float = 0.0

    @property
    def key(self) -> CacheKey:
        return (self.sport_type, self.api_date)


class CacheStorage(ABC):
    """Where ResultsCache keeps its entries."""

    @abstractmethod
    def get(self, key: CacheKey) -> Optional[CachedResultSet]:
        ...

    @abstractmethod
    def set(self, entry: CachedResultSet) -> None:
        """Store entry, replacing any entry with the same key.

        Raises:
            CacheStorageError: If the entry cannot be written
        """

    @abstractmethod
    def delete(self, key: CacheKey) -> None:
        ...

    @abstractmethod
    def prune(self, older_than: float) -> int:
        """Delete entries fetched before older_than; return how many went."""

    def clear(self) -> None:
        self.prune(float("inf"))


class MemoryCacheStorage(CacheStorage):
    """
    Dict-backed storage.

    max_entries models a storage quota: writing a new key while full raises
    CacheStorageError, the same way a full browser or disk store would.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, CachedResultSet] = OrderedDict()

    def get(self, key: CacheKey) -> Optional[CachedResultSet]:
        return self._entries.get(key)

    def set(self, entry: CachedResultSet) -> None:
        if (
            self.max_entries is not None
            and entry.key not in self._entries
            and len(self._entries) >= self.max_entries
        ):
            raise CacheStorageError(
                f"Cache storage full ({self.max_entries} entries), cannot store {entry.key}"
            )
        self._entries[entry.key] = entry

    def delete(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def prune(self, older_than: float) -> int:
        stale = [key for key, entry in self._entries.items() if entry.fetched_at < older_than]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries


class SqlCacheStorage(CacheStorage):
    """
    Storage in the cached_result_sets table, shared across processes.

    Args:
        session_factory: Callable returning a new Session (a sessionmaker).
                         Defaults to the application's SessionLocal.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        if session_factory is None:
            from betcheck.db.session import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def get(self, key: CacheKey) -> Optional[CachedResultSet]:
        from betcheck.db.models import CachedResultSetRecord

        sport_type, api_date = key
        try:
            with self._session_factory() as session:
                record = session.execute(
                    select(CachedResultSetRecord).where(
                        CachedResultSetRecord.sport_type == sport_type,
                        CachedResultSetRecord.api_date == api_date,
                    )
                ).scalar_one_or_none()
                if record is None:
                    return None
                return CachedResultSet(
                    sport_type=record.sport_type,
                    api_date=record.api_date,
                    matches=[AuthoritativeMatch.from_dict(m) for m in record.matches or []],
                    fetched_at=record.fetched_at,
                )
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to read cached results for {key}: {e}") from e

    def set(self, entry: CachedResultSet) -> None:
        from betcheck.db.models import CachedResultSetRecord

        try:
            with self._session_factory() as session:
                record = session.execute(
                    select(CachedResultSetRecord).where(
                        CachedResultSetRecord.sport_type == entry.sport_type,
                        CachedResultSetRecord.api_date == entry.api_date,
                    )
                ).scalar_one_or_none()
                if record is None:
                    record = CachedResultSetRecord(
                        sport_type=entry.sport_type,
                        api_date=entry.api_date,
                    )
                    session.add(record)
                record.matches = [m.to_dict() for m in entry.matches]
                record.fetched_at = entry.fetched_at
                session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to store cached results for {entry.key}: {e}") from e

    def delete(self, key: CacheKey) -> None:
        from betcheck.db.models import CachedResultSetRecord

        sport_type, api_date = key
        try:
            with self._session_factory() as session:
                session.execute(
                    delete(CachedResultSetRecord).where(
                        CachedResultSetRecord.sport_type == sport_type,
                        CachedResultSetRecord.api_date == api_date,
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to delete cached results for {key}: {e}") from e

    def prune(self, older_than: float) -> int:
        from betcheck.db.models import CachedResultSetRecord

        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(CachedResultSetRecord).where(
                        CachedResultSetRecord.fetched_at < older_than
                    )
                )
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to prune cached results: {e}") from e


# =============================================================================
# Results cache
# =============================================================================


class ResultsCache:
    """
    Feed results keyed by (sport type, ISO date), reused until they expire.

    Build one per process and share it; the web app keeps it on app.state.

    Usage:
        client = ResultsFeedClient()
        cache = ResultsCache(client.fetch_matches)
        matches = await cache.get_or_fetch("tennis", "10th Apr 2025")
    """

    def __init__(
        self,
        fetch: Fetcher,
        storage: Optional[CacheStorage] = None,
        clock: Clock = time.time,
        ttl_seconds: Optional[float] = None,
    ):
        """
        Args:
            fetch: Coroutine function (sport_type, api_date) -> matches.
                   ResultsFeedError, httpx errors and timeouts count as
                   feed failures; anything else is a bug and propagates
            storage: Backend; defaults to an unbounded MemoryCacheStorage
            clock: Returns the current time in seconds
            ttl_seconds: Entry lifetime; defaults to settings.results_cache_ttl_seconds
        """
        self._fetch = fetch
        self.storage = storage if storage is not None else MemoryCacheStorage()
        self._clock = clock
        self.ttl_seconds = (
            settings.results_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )

    @staticmethod
    def make_key(sport_type: str, date: str) -> CacheKey:
        return (sport_type, to_api_date(date))

    async def get_or_fetch(self, sport_type: str, date: str) -> list[AuthoritativeMatch]:
        """
        Return the matches for a sport and date, fetching them if needed.

        Args:
            sport_type: 'tennis' or 'table-tennis'
            date: Any date form to_api_date understands

        Returns:
            Matches for the date; [] when the date is empty or the feed failed
        """
        key = self.make_key(sport_type, date)
        if not key[1]:
            return []

        cached = self._read(key)
        if cached is not None:
            if self._clock() - cached.fetched_at < self.ttl_seconds:
                logger.debug("Results cache hit for %s %s", *key)
                return list(cached.matches)

            logger.debug("Results cache entry for %s %s expired", *key)
            self._delete(key)

        try:
            matches = await self._fetch(*key)
        except (ResultsFeedError, httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning("Could not fetch %s results for %s: %r", key[0], key[1], e)
            return []

        entry = CachedResultSet(
            sport_type=key[0],
            api_date=key[1],
            matches=list(matches),
            fetched_at=self._clock(),
        )
        try:
            self.storage.set(entry)
        except CacheStorageError as e:
            logger.warning("Failed to cache results for %s %s: %s", key[0], key[1], e)
            self.prune_expired()

        return list(matches)

    def prune_expired(self) -> int:
        """Remove expired entries from storage; return how many were removed."""
        cutoff = self._clock() - self.ttl_seconds
        try:
            removed = self.storage.prune(cutoff)
        except CacheStorageError as e:
            logger.warning("Failed to prune results cache: %s", e)
            return 0

        if removed:
            logger.info("Pruned %d expired result sets from cache", removed)
        return removed

    def invalidate(self, sport_type: str, date: str) -> None:
        self._delete(self.make_key(sport_type, date))

    def _read(self, key: CacheKey) -> Optional[CachedResultSet]:
        try:
            return self.storage.get(key)
        except CacheStorageError as e:
            logger.warning("Failed to read results cache for %s %s: %s", key[0], key[1], e)
            return None

    def _delete(self, key: CacheKey) -> None:
        try:
            self.storage.delete(key)
        except CacheStorageError as e:
            logger.warning("Failed to remove cached results for %s %s: %s", key[0], key[1], e)
