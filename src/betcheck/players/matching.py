"""
Tiered player matching between prediction sheets and the results feed.

Spreadsheet sources abbreviate names inconsistently (surname first,
initials, missing accents) relative to the results feed. A single exact or
fuzzy comparison gives too many misses or too many false hits, so matching
runs through tiers ordered from strictest to loosest:

0. Verbatim - the query is itself in the pool
1. Exact normalized - "Carlos Alcaráz" == "carlos alcaraz"
2. Abbreviated pattern - "Djokovic N." / "N. Djokovic"
3. Last name - unique last name, or unique first initial among namesakes
4. Fuzzy - best dissimilarity below the configured threshold
5. Initials / prefix - same initials or same 3-letter last-name prefix

The first tier that produces a result wins. When nothing is confident the
matcher returns an empty string and callers treat the prediction as
"cannot reconcile" rather than guessing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from betcheck.config import settings
from betcheck.players.aliases import (
    NameParts,
    extract_name_parts,
    first_initial,
    name_distance,
    normalize_name,
    strip_accents,
)

logger = logging.getLogger(__name__)

# "Diallo G." / "Diallo G" / "diallo g." or "G. Diallo" / "G Diallo"
_ABBREVIATED_NAME = re.compile(
    r"^([A-Za-z'\-]+)\s+([A-Za-z])\.?$|^([A-Za-z])\.?\s+([A-Za-z'\-]+)$"
)

NO_MATCH = ""


@dataclass(frozen=True)
class PlayerMatch:
    """
    Result of a matching attempt.

    Attributes:
        name: Candidate from the pool, or "" when nothing matched
        tier: Which tier produced the match ('verbatim', 'exact',
              'abbreviated', 'last_name', 'fuzzy', 'initials', 'none')
        distance: Dissimilarity for fuzzy matches, 0.0 for the strict tiers
    """
    name: str
    tier: str
    distance: float = 0.0

    @property
    def matched(self) -> bool:
        return bool(self.name)

    def __repr__(self) -> str:
        return f"<PlayerMatch(name='{self.name}', tier='{self.tier}', dist={self.distance:.2f})>"


@dataclass(frozen=True)
class _Candidate:
    """A pool name with its comparison forms pre-computed."""
    name: str
    normalized: str
    parts: NameParts
    first_normalized: str
    last_normalized: str


class PlayerMatcher:
    """
    Matches spreadsheet player names against a pool of feed names.

    Build one matcher per result set (one date/sport) and call match() or
    find_best_match() for each prediction side. Results are memoised per
    query string.

    Usage:
        matcher = PlayerMatcher(["Novak Djokovic", "Rafael Nadal"])
        matcher.find_best_match("Djokovic N.")   # "Novak Djokovic"
        matcher.match("Nadal").tier              # "last_name"
    """

    def __init__(self, candidates: Iterable[str], threshold: Optional[float] = None):
        """
        Initialize the matcher.

        Args:
            candidates: Authoritative names. Duplicates and blanks are dropped,
                        first-seen order is kept.
            threshold: Maximum fuzzy dissimilarity; defaults to
                       settings.fuzzy_match_threshold
        """
        self.threshold = settings.fuzzy_match_threshold if threshold is None else threshold

        seen: set[str] = set()
        self.names: list[str] = []
        for name in candidates:
            if name and name.strip() and name not in seen:
                seen.add(name)
                self.names.append(name)

        self._candidates = [self._prepare(name) for name in self.names]
        self._cache: dict[str, PlayerMatch] = {}

    # =========================================================================
    # Main Public Methods
    # =========================================================================

    def find_best_match(self, query: Optional[str]) -> str:
        """Return the best pool name for query, or "" if none is confident."""
        return self.match(query).name

    def match(self, query: Optional[str]) -> PlayerMatch:
        """
        Run the tiers for query and report which one matched.

        Args:
            query: Raw player name from a prediction sheet

        Returns:
            PlayerMatch; name is "" and tier is 'none' when nothing matched
        """
        if not query or not query.strip():
            return PlayerMatch(NO_MATCH, "none")

        if query in self._cache:
            return self._cache[query]

        result = self._run_tiers(query)
        if result.matched:
            logger.debug("Matched '%s' to '%s' via %s tier", query, result.name, result.tier)
        else:
            logger.debug("No match found for '%s'", query)

        self._cache[query] = result
        return result

    # =========================================================================
    # Tiers
    # =========================================================================

    def _run_tiers(self, query: str) -> PlayerMatch:
        # Tier 0: verbatim
        if query in self.names:
            return PlayerMatch(query, "verbatim")

        normalized_query = normalize_name(query)

        # Tier 1: exact normalized
        for candidate in self._candidates:
            if candidate.normalized == normalized_query:
                return PlayerMatch(candidate.name, "exact")

        # Tier 2: abbreviated pattern
        name = self._match_abbreviated(query)
        if name:
            return PlayerMatch(name, "abbreviated")

        query_parts = extract_name_parts(query)

        # Tier 3: last name
        name = self._match_last_name(query_parts)
        if name:
            return PlayerMatch(name, "last_name")

        # Tier 4: fuzzy
        fuzzy = self._match_fuzzy(query)
        if fuzzy is not None:
            return fuzzy

        # Tier 5: initials / last-name prefix
        name = self._match_initials(query_parts)
        if name:
            return PlayerMatch(name, "initials")

        return PlayerMatch(NO_MATCH, "none")

    def _match_abbreviated(self, query: str) -> str:
        """
        Match "<Word> <Initial>" or "<Initial> <Word>".

        The word is assumed to be the last name first; the reversed reading
        (word is a first name, initial belongs to the last name) is tried on
        the same candidate before moving on.
        """
        found = _ABBREVIATED_NAME.match(" ".join(strip_accents(query).split()))
        if not found:
            return NO_MATCH

        word = normalize_name(found.group(1) or found.group(4))
        initial = (found.group(2) or found.group(3)).lower()
        if not word:
            return NO_MATCH

        for candidate in self._candidates:
            if (
                word in candidate.last_normalized
                and candidate.first_normalized[:1] == initial
            ):
                return candidate.name

            if (
                candidate.first_normalized
                and word in candidate.first_normalized
                and candidate.last_normalized[:1] == initial
            ):
                return candidate.name

        return NO_MATCH

    def _match_last_name(self, query_parts: NameParts) -> str:
        """
        Match on last name alone, using the first initial to break ties.

        A candidate qualifies when either last name contains the other.
        """
        query_last = normalize_name(query_parts.last_name)
        if not query_last:
            return NO_MATCH

        matches = [
            candidate for candidate in self._candidates
            if candidate.last_normalized
            and (
                query_last in candidate.last_normalized
                or candidate.last_normalized in query_last
            )
        ]

        if len(matches) == 1:
            return matches[0].name

        if len(matches) > 1 and query_parts.first_name:
            initial = first_initial(query_parts.first_name)
            agreeing = [c for c in matches if c.first_normalized[:1] == initial]
            if len(agreeing) == 1:
                return agreeing[0].name

        return NO_MATCH

    def _match_fuzzy(self, query: str) -> Optional[PlayerMatch]:
        """Accept the closest candidate if it is below the threshold."""
        best: Optional[PlayerMatch] = None

        for candidate in self._candidates:
            distance = name_distance(query, candidate.name)
            if best is None or distance < best.distance:
                best = PlayerMatch(candidate.name, "fuzzy", distance)

        if best is not None and best.distance < self.threshold:
            return best
        return None

    def _match_initials(self, query_parts: NameParts) -> str:
        """
        Loosest tier: same initials and last-name prefix, or same 3-letter
        last-name prefix.
        """
        query_last = normalize_name(query_parts.last_name)
        if not query_last:
            return NO_MATCH

        query_initials = strip_accents(query_parts.initials).upper()

        for candidate in self._candidates:
            candidate_last = candidate.last_normalized
            if not candidate_last:
                continue

            prefix = candidate_last[:3]
            candidate_initials = strip_accents(candidate.parts.initials).upper()

            if query_initials == candidate_initials and query_last.startswith(prefix):
                return candidate.name

            if query_last[:3] == prefix:
                return candidate.name

        return NO_MATCH

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    @staticmethod
    def _prepare(name: str) -> _Candidate:
        parts = extract_name_parts(name)
        return _Candidate(
            name=name,
            normalized=normalize_name(name),
            parts=parts,
            first_normalized=normalize_name(parts.first_name),
            last_normalized=normalize_name(parts.last_name),
        )


def find_best_match(
    query: Optional[str],
    candidates: Iterable[str],
    threshold: Optional[float] = None,
) -> str:
    """
    Return the best match for query in candidates, or "" for no match.

    Convenience wrapper that builds a one-off PlayerMatcher. When matching
    many names against the same pool, build the matcher once instead.

    Examples:
        >>> find_best_match("Djokovic N.", ["Novak Djokovic"])
        'Novak Djokovic'
        >>> find_best_match("Nadal R.", ["Rafael Nadal", "Toni Nadal"])
        'Rafael Nadal'
    """
    return PlayerMatcher(candidates, threshold=threshold).find_best_match(query)
