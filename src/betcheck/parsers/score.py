"""
Score parsing for prediction sheets and feed results.

Scores arrive in several shapes:
- Main score with sets: "2:0(6:3, 6:3)" or "2:0 (6:3, 6:3)"
- Sets with tie-breaks: "2:1(7:6(5), 3:6, 6:4)"
- Main score only: "2:0" or "2-0"
- Sets only, in parentheses: "(6:3, 6:3)"
- Sets only, bare list: "6:3, 6:3"

":" and "-" are both used as separators, sometimes within the same file.
Everything is normalised to ":" before parsing.

Parsing never raises. Anything that cannot be read as a main score gives
main_score=None, which callers show as "N/A" or "Pending".
"""

import re
from dataclasses import dataclass
from typing import Optional

# First "(" to last ")", so tie-breaks like "7:6(5)" stay in the group
_SET_GROUP = re.compile(r"\((.*)\)")
_MAIN_SCORE = re.compile(r"^(\d+)\s*:\s*(\d+)$")


@dataclass(frozen=True)
class MainScore:
    """
    Sets (or games) won by each side.

    Attributes:
        a: Score of side A (team1 / home)
        b: Score of side B (team2 / away)
    """
    a: int
    b: int

    @property
    def winner(self) -> Optional[str]:
        """'A' or 'B' for the side with the higher score, None when level."""
        if self.a > self.b:
            return "A"
        if self.b > self.a:
            return "B"
        return None

    def swapped(self) -> "MainScore":
        return MainScore(a=self.b, b=self.a)

    def display(self) -> str:
        return f"{self.a}:{self.b}"

    def __repr__(self) -> str:
        return f"<MainScore({self.display()})>"


@dataclass(frozen=True)
class ParsedScore:
    """
    A parsed score string.

    Attributes:
        main_score: Overall score, or None if absent or unreadable
        set_scores: Per-set scores as text ("6:3, 6:3"), or None
        raw_score: Original input
    """
    main_score: Optional[MainScore] = None
    set_scores: Optional[str] = None
    raw_score: str = ""

    @property
    def is_set_only(self) -> bool:
        return self.main_score is None and self.set_scores is not None

    def display_main(self, missing: str = "N/A") -> str:
        return self.main_score.display() if self.main_score else missing


def normalize_separators(value: str) -> str:
    """Use ":" as the only score separator ("6-3" → "6:3")."""
    return value.replace("-", ":")


def parse_main_score(value: Optional[str]) -> Optional[MainScore]:
    """
    Parse a bare "a:b" / "a-b" score.

    Returns:
        MainScore, or None if value isn't exactly two integers
    """
    if not value:
        return None

    found = _MAIN_SCORE.match(normalize_separators(value).strip())
    if not found:
        return None
    return MainScore(a=int(found.group(1)), b=int(found.group(2)))


def parse_score(raw: Optional[str]) -> ParsedScore:
    """
    Parse a score string into its main score and set scores.

    Args:
        raw: Score text from a prediction sheet or the feed

    Returns:
        ParsedScore. Empty or malformed input gives main_score=None.

    Examples:
        >>> parse_score("2:0(6:3, 6:3)").main_score
        <MainScore(2:0)>
        >>> parse_score("2:0(6:3, 6:3)").set_scores
        '6:3, 6:3'
        >>> parse_score("6-3, 6-3").is_set_only
        True
    """
    if raw is None:
        return ParsedScore()

    original = str(raw)
    score = normalize_separators(original).strip()
    if not score:
        return ParsedScore(raw_score=original)

    set_scores: Optional[str] = None
    group = _SET_GROUP.search(score)

    if group:
        set_scores = _clean_set_list(group.group(1))
        main_part = score[:group.start()].strip()
    elif "," in score:
        # A bare comma-separated list is set scores with no main score
        return ParsedScore(set_scores=_clean_set_list(score), raw_score=original)
    else:
        main_part = score

    return ParsedScore(
        main_score=parse_main_score(main_part),
        set_scores=set_scores,
        raw_score=original,
    )


def format_set_scores(sets: list[tuple[int, int]]) -> str:
    """
    Format (a, b) pairs as "6:3, 4:6".

    Sets where neither side has a score (0:0) are left out, they are
    periods the feed hasn't filled in yet.
    """
    played = [f"{a}:{b}" for a, b in sets if a > 0 or b > 0]
    return ", ".join(played)


def _clean_set_list(value: str) -> Optional[str]:
    items = [item.strip() for item in value.split(",")]
    items = [" ".join(item.split()) for item in items if item]
    return ", ".join(items) if items else None
