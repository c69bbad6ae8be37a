"""
Data types shared by the results feed client and the results cache.
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional

from betcheck.parsers.score import MainScore, format_set_scores


class ResultsFeedError(Exception):
    """Raised when the results feed cannot be reached or returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class AuthoritativeMatch:
    """
    One match record from the results feed.

    Scores are None until the match has been played. Set scores cover the
    first two sets only, which is all the feed reports per period.
    """

    # Players / teams, in the feed's home/away order
    home_team_name: str
    away_team_name: str

    # Result
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_set1: Optional[int] = None
    away_set1: Optional[int] = None
    home_set2: Optional[int] = None
    away_set2: Optional[int] = None

    # Pass-through metadata
    status: Optional[str] = None
    start_time: Optional[str] = None
    league_name: Optional[str] = None
    match_id: Optional[str] = None

    @classmethod
    def from_feed(cls, data: dict) -> "AuthoritativeMatch":
        """Build from one entry of a feed "matches" list."""
        match_id = data.get("id")
        return cls(
            home_team_name=str(data.get("home_team_name") or ""),
            away_team_name=str(data.get("away_team_name") or ""),
            home_score=_to_int(data.get("home_team_score")),
            away_score=_to_int(data.get("away_team_score")),
            home_set1=_to_int(data.get("home_team_period_1_score")),
            away_set1=_to_int(data.get("away_team_period_1_score")),
            home_set2=_to_int(data.get("home_team_period_2_score")),
            away_set2=_to_int(data.get("away_team_period_2_score")),
            status=data.get("status"),
            start_time=data.get("start_time"),
            league_name=data.get("league_name"),
            match_id=str(match_id) if match_id is not None else None,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "AuthoritativeMatch":
        """Rebuild from to_dict() output (cache storage round trip)."""
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__})

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def main_score(self) -> Optional[MainScore]:
        """Home/away score, or None while the match is unplayed."""
        if self.home_score is None or self.away_score is None:
            return None
        return MainScore(a=self.home_score, b=self.away_score)

    def set_pairs(self) -> list[tuple[int, int]]:
        """(home, away) per reported set; missing values count as 0."""
        return [
            (self.home_set1 or 0, self.away_set1 or 0),
            (self.home_set2 or 0, self.away_set2 or 0),
        ]

    def set_scores(self) -> str:
        """Played sets as "6:2, 10:3" ("" if none were played)."""
        return format_set_scores(self.set_pairs())

    def __repr__(self) -> str:
        score = self.main_score.display() if self.main_score else "-"
        return f"<AuthoritativeMatch({self.home_team_name} vs {self.away_team_name}, {score})>"
