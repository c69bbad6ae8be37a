"""
Reconciliation service - joins predictions to feed results.

For a (sport type, date) selection:
1. The results cache supplies the feed's matches for that date
2. Both team names of each prediction are matched against the feed's
   player names (PlayerMatcher)
3. The matched pair is looked up as (home, away), then as (away, home).
   A reversed hit means the feed lists the players the other way round,
   so its scores are swapped back into team1/team2 order
4. The outcome evaluator compares predicted and realised winners

Predictions without a usable feed result fall back to the final score typed
into the sheet; when neither exists the score is "Pending" and the verdict
"undetermined".

Selections can change while a fetch is in flight. LatestRequestGate makes
sure only the result for the most recent selection is used.

Usage:
    service = ReconciliationService(results_cache)
    for item in await service.reconcile(predictions, "tennis", "10th Apr 2025"):
        print(item.prediction.team1, item.display_score, item.is_correct)
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, Hashable, Iterable, Optional, TypeVar

from betcheck.feed.base import AuthoritativeMatch
from betcheck.feed.cache import ResultsCache
from betcheck.outcome import UNDETERMINED, Outcome, Verdict, evaluate_outcome
from betcheck.parsers.score import MainScore, format_set_scores, parse_score
from betcheck.players.matching import PlayerMatcher
from betcheck.services.prediction_ingestion import Prediction

logger = logging.getLogger(__name__)

PENDING = "Pending"

SCORE_SOURCE_FEED = "feed"
SCORE_SOURCE_SPREADSHEET = "spreadsheet"

T = TypeVar("T")


# =============================================================================
# Match lookup
# =============================================================================


@dataclass(frozen=True)
class MatchKey:
    """Order-sensitive (home, away) pair of feed player names."""
    home: str
    away: str

    def reversed(self) -> "MatchKey":
        return MatchKey(home=self.away, away=self.home)

    def __str__(self) -> str:
        return f"{self.home} vs {self.away}"


@dataclass(frozen=True)
class MatchLookup:
    """
    A feed match found for a prediction.

    swapped is True when the prediction's team1 is the feed's away player.
    """
    match: AuthoritativeMatch
    swapped: bool = False

    @property
    def main_score(self) -> Optional[MainScore]:
        """Feed score in team1/team2 order."""
        score = self.match.main_score
        if score is None:
            return None
        return score.swapped() if self.swapped else score

    @property
    def set_pairs(self) -> list[tuple[int, int]]:
        """Per-set scores in team1/team2 order."""
        pairs = self.match.set_pairs()
        if self.swapped:
            return [(b, a) for a, b in pairs]
        return pairs


class MatchIndex:
    """
    Feed matches for one date, searchable by prediction team names.

    Every home and away name goes into a single PlayerMatcher pool, so a
    spreadsheet name can match a player on either side.
    """

    def __init__(self, matches: Iterable[AuthoritativeMatch], threshold: Optional[float] = None):
        self.matches: list[AuthoritativeMatch] = []
        self._by_key: dict[MatchKey, AuthoritativeMatch] = {}

        names: list[str] = []
        for match in matches:
            if not match.home_team_name or not match.away_team_name:
                continue
            key = MatchKey(match.home_team_name, match.away_team_name)
            self._by_key.setdefault(key, match)
            self.matches.append(match)
            names.extend([match.home_team_name, match.away_team_name])

        self.matcher = PlayerMatcher(names, threshold=threshold)

    def resolve_names(self, team1: str, team2: str) -> tuple[str, str]:
        """Feed names for both teams ("" where no confident match)."""
        return (
            self.matcher.find_best_match(team1),
            self.matcher.find_best_match(team2),
        )

    def lookup(self, team1: str, team2: str) -> Optional[MatchLookup]:
        """
        Find the feed match between two spreadsheet names.

        Returns:
            MatchLookup, or None when either name is unmatched, both resolve
            to the same player, or the two players didn't meet
        """
        name1, name2 = self.resolve_names(team1, team2)
        if not name1 or not name2 or name1 == name2:
            return None
        return self.lookup_key(MatchKey(name1, name2))

    def lookup_key(self, key: MatchKey) -> Optional[MatchLookup]:
        match = self._by_key.get(key)
        if match is not None:
            return MatchLookup(match=match, swapped=False)

        match = self._by_key.get(key.reversed())
        if match is not None:
            logger.debug("Matched %s in reversed order", key)
            return MatchLookup(match=match, swapped=True)

        logger.debug("No feed match for %s", key)
        return None

    def __len__(self) -> int:
        return len(self.matches)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ResolvedScore:
    """
    The realised score of a predicted match, in team1/team2 order.

    Attributes:
        main_score: Sets won by each side, or None when unknown
        set_scores: Played sets as "6:2, 10:3" ("" if none)
        source: 'feed' or 'spreadsheet', None when nothing is known
    """
    main_score: Optional[MainScore] = None
    set_scores: str = ""
    source: Optional[str] = None

    @property
    def known(self) -> bool:
        return self.main_score is not None

    def display(self) -> str:
        """'2:0 (6:2, 10:3)', '2:0', or 'Pending'."""
        if self.main_score is None:
            return PENDING
        if self.set_scores:
            return f"{self.main_score.display()} ({self.set_scores})"
        return self.main_score.display()


@dataclass
class ReconciledPrediction:
    """A prediction together with what actually happened."""
    prediction: Prediction
    resolved_score: ResolvedScore = field(default_factory=ResolvedScore)
    outcome: Outcome = field(default_factory=lambda: Outcome(verdict=UNDETERMINED))
    matched_team1: str = ""
    matched_team2: str = ""
    swapped: bool = False
    match: Optional[AuthoritativeMatch] = None

    @property
    def display_score(self) -> str:
        return self.resolved_score.display()

    @property
    def is_correct(self) -> Verdict:
        return self.outcome.verdict

    @property
    def outcome_label(self) -> str:
        return self.outcome.label

    def to_dict(self) -> dict:
        data = self.prediction.to_dict()
        score = self.resolved_score
        data["resolved_score"] = {
            "main_score": score.main_score.display() if score.main_score else None,
            "set_scores": score.set_scores or None,
            "source": score.source,
            "display": score.display(),
        }
        data["is_correct"] = self.is_correct
        data["predicted_winner"] = self.outcome.predicted_winner
        data["actual_winner"] = self.outcome.actual_winner
        data["matched_team1"] = self.matched_team1
        data["matched_team2"] = self.matched_team2
        data["swapped"] = self.swapped
        return data


def resolve_score(prediction: Prediction, lookup: Optional[MatchLookup]) -> ResolvedScore:
    """
    Work out the realised score for a prediction.

    The feed wins when it has a main score; otherwise the sheet's
    final_score is used if it parses.
    """
    if lookup is not None and lookup.main_score is not None:
        return ResolvedScore(
            main_score=lookup.main_score,
            set_scores=format_set_scores(lookup.set_pairs),
            source=SCORE_SOURCE_FEED,
        )

    parsed = parse_score(prediction.final_score)
    if parsed.main_score is not None:
        return ResolvedScore(
            main_score=parsed.main_score,
            set_scores=parsed.set_scores or "",
            source=SCORE_SOURCE_SPREADSHEET,
        )

    return ResolvedScore()


def reconcile_matches(
    predictions: Iterable[Prediction],
    matches: Iterable[AuthoritativeMatch],
    threshold: Optional[float] = None,
) -> list[ReconciledPrediction]:
    """
    Reconcile predictions against an already fetched list of feed matches.

    Predictions with an empty team name (tournament header rows) are left
    out of the result.
    """
    index = MatchIndex(matches, threshold=threshold)
    results: list[ReconciledPrediction] = []

    for prediction in predictions:
        if not prediction.team1 or not prediction.team2:
            continue

        name1, name2 = index.resolve_names(prediction.team1, prediction.team2)
        lookup = index.lookup(prediction.team1, prediction.team2)

        score = resolve_score(prediction, lookup)
        results.append(
            ReconciledPrediction(
                prediction=prediction,
                resolved_score=score,
                outcome=evaluate_outcome(prediction.score_prediction, score.main_score),
                matched_team1=name1,
                matched_team2=name2,
                swapped=lookup.swapped if lookup else False,
                match=lookup.match if lookup else None,
            )
        )

    found = sum(1 for r in results if r.match is not None)
    logger.info("Reconciled %d predictions, %d matched to feed results", len(results), found)
    return results


# =============================================================================
# Last-request-wins
# =============================================================================


class LatestRequestGate(Generic[T]):
    """
    Drops results for selections that are no longer current.

    Each request records its key as the current selection when it starts.
    When it finishes, its result is kept only if its key is still the
    current selection.

    Usage:
        key = gate.begin(("tennis", "10th Apr 2025"))
        result = await slow_work()
        result = gate.commit(key, result)   # None if superseded
    """

    def __init__(self):
        self.current: Optional[Hashable] = None

    def begin(self, key: Hashable) -> Hashable:
        self.current = key
        return key

    def is_current(self, key: Hashable) -> bool:
        return self.current == key

    def commit(self, key: Hashable, result: T) -> Optional[T]:
        if not self.is_current(key):
            logger.debug("Discarding result for %s, superseded by %s", key, self.current)
            return None
        return result


class ReconciliationService:
    """
    Reconciles predictions for a (sport type, date) selection.

    Args:
        cache: Shared results cache
        threshold: Fuzzy matching threshold override
    """

    def __init__(self, cache: ResultsCache, threshold: Optional[float] = None):
        self.cache = cache
        self.threshold = threshold
        self.gate: LatestRequestGate[list[ReconciledPrediction]] = LatestRequestGate()

    async def reconcile(
        self,
        predictions: Iterable[Prediction],
        sport_type: str,
        date: str,
    ) -> list[ReconciledPrediction]:
        """
        Reconcile predictions against the feed's results for a date.

        Never raises for feed problems: an unavailable feed means every
        prediction comes back undetermined (or with its sheet score).
        """
        matches = await self.cache.get_or_fetch(sport_type, date)
        return reconcile_matches(predictions, matches, threshold=self.threshold)

    async def reconcile_latest(
        self,
        predictions: Iterable[Prediction],
        sport_type: str,
        date: str,
    ) -> Optional[list[ReconciledPrediction]]:
        """
        Like reconcile(), but returns None if another selection was started
        before this one finished.
        """
        key = self.gate.begin((sport_type, date))
        results = await self.reconcile(predictions, sport_type, date)
        return self.gate.commit(key, results)
