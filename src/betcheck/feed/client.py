"""Results feed client.

Fetches authoritative match results for one date:

    GET {base_url}/matches-by-date?date=eq.{YYYY-MM-DD}
    Authorization: Bearer <token>

The feed answers either with {"matches": [...]} or with a list of such
objects. Any transport error, non-2xx status or unreadable body is raised
as ResultsFeedError; the results cache turns that into "no data".
"""

import logging
from typing import Any, Optional

import httpx

from betcheck.config import settings
from betcheck.feed.base import AuthoritativeMatch, ResultsFeedError

logger = logging.getLogger(__name__)


class ResultsFeedClient:
    """Async client for the match results feed.

    Usage:
        async with ResultsFeedClient() as client:
            matches = await client.fetch_matches("tennis", "2025-04-10")
    """

    ENDPOINT = "matches-by-date"

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            token: Bearer token; defaults to settings.results_feed_token
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
        """
        self.token = token if token is not None else settings.results_feed_token
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=headers,
            timeout=timeout or settings.results_feed_timeout_seconds,
        )
        if client is not None:
            self.client.headers.update(headers)

    async def __aenter__(self) -> "ResultsFeedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def url_for(self, sport_type: str) -> str:
        base_url = settings.feed_base_url_for(sport_type).rstrip("/")
        return f"{base_url}/{self.ENDPOINT}"

    async def fetch_matches(self, sport_type: str, api_date: str) -> list[AuthoritativeMatch]:
        """
        Fetch every match the feed knows for a date.

        Args:
            sport_type: 'tennis' or 'table-tennis' (selects the base URL)
            api_date: ISO date "YYYY-MM-DD"

        Returns:
            Matches in feed order; entries without both team names are skipped

        Raises:
            ResultsFeedError: On transport failure, non-2xx status or a body
                that isn't JSON
        """
        url = self.url_for(sport_type)
        logger.debug("Fetching %s results for %s from %s", sport_type, api_date, url)

        try:
            response = await self.client.get(url, params={"date": f"eq.{api_date}"})
        except httpx.HTTPError as e:
            raise ResultsFeedError(f"Request to results feed failed: {e}") from e

        if not response.is_success:
            raise ResultsFeedError(
                f"Results feed returned HTTP {response.status_code} for {api_date}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ResultsFeedError(f"Results feed returned invalid JSON for {api_date}") from e

        matches = [
            AuthoritativeMatch.from_feed(entry)
            for entry in extract_match_entries(payload)
        ]
        matches = [m for m in matches if m.home_team_name and m.away_team_name]

        logger.info("Fetched %d %s matches for %s", len(matches), sport_type, api_date)
        return matches


def extract_match_entries(payload: Any) -> list[dict]:
    """
    Flatten a feed response into raw match dicts.

    Accepts {"matches": [...]}, a list of such objects, or a bare list of
    match dicts. Anything else yields no entries.
    """
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        return []

    entries: list[dict] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("matches"), list):
            entries.extend(m for m in item["matches"] if isinstance(m, dict))
        elif "home_team_name" in item:
            entries.append(item)
    return entries
