"""
Tests for reconciling predictions with feed results.

The feed_matches fixture holds one finished match in home/away order, one
finished match the predictions list the other way round, and one match
that hasn't been played.
"""

import asyncio

import pytest

from betcheck.feed.base import AuthoritativeMatch
from betcheck.outcome import UNDETERMINED, Outcome
from betcheck.parsers.score import MainScore
from betcheck.services.reconciliation import (
    PENDING,
    SCORE_SOURCE_FEED,
    SCORE_SOURCE_SPREADSHEET,
    LatestRequestGate,
    MatchIndex,
    MatchKey,
    ReconciliationService,
    ResolvedScore,
    reconcile_matches,
    resolve_score,
)


@pytest.fixture
def predictions(make_prediction):
    return [
        make_prediction("Djokovic N.", "Nadal R.", score_prediction="2:0(6:3, 6:3)"),
        make_prediction("Sinner J.", "Alcaraz C.", score_prediction="2:1"),
        make_prediction("Medvedev D.", "Zverev A.", score_prediction="0:2"),
        make_prediction("Zhang Z.", "Wu Y.", score_prediction="2:0", final_score="0:2 (4:6, 3:6)"),
    ]


def by_team1(results):
    return {r.prediction.team1: r for r in results}


class TestReconcileMatches:
    """Tests for reconcile_matches."""

    def test_direct_order(self, predictions, feed_matches):
        result = by_team1(reconcile_matches(predictions, feed_matches))["Djokovic N."]

        assert result.matched_team1 == "Novak Djokovic"
        assert result.matched_team2 == "Rafael Nadal"
        assert not result.swapped
        assert result.resolved_score.source == SCORE_SOURCE_FEED
        assert result.display_score == "2:1 (6:4, 3:6)"
        assert result.is_correct is True
        assert result.match.match_id == "1001"

    def test_reversed_order_swaps_scores(self, predictions, feed_matches):
        """Test a feed match listed away/home is read back in team1/team2 order."""
        result = by_team1(reconcile_matches(predictions, feed_matches))["Sinner J."]

        assert result.swapped
        assert result.resolved_score.main_score == MainScore(2, 0)
        assert result.resolved_score.set_scores == "6:4, 7:5"
        assert result.display_score == "2:0 (6:4, 7:5)"
        assert result.is_correct is True

    def test_unplayed_match_is_pending(self, predictions, feed_matches):
        result = by_team1(reconcile_matches(predictions, feed_matches))["Medvedev D."]

        assert result.match is not None
        assert result.display_score == PENDING
        assert result.is_correct == UNDETERMINED
        assert result.outcome_label == "undetermined"

    def test_spreadsheet_score_fallback(self, predictions, feed_matches):
        """Test the sheet's final score is used when the feed has no match."""
        result = by_team1(reconcile_matches(predictions, feed_matches))["Zhang Z."]

        assert result.match is None
        assert result.matched_team1 == ""
        assert result.resolved_score.source == SCORE_SOURCE_SPREADSHEET
        assert result.display_score == "0:2 (4:6, 3:6)"
        assert result.is_correct is False
        assert result.outcome == Outcome(verdict=False, predicted_winner="A", actual_winner="B")

    def test_no_feed_results(self, predictions):
        results = reconcile_matches(predictions, [])

        assert len(results) == 4
        assert [r.is_correct for r in results] == [UNDETERMINED] * 3 + [False]

    def test_predictions_without_teams_excluded(self, make_prediction, feed_matches):
        results = reconcile_matches(
            [make_prediction("ATP Monte Carlo", ""), make_prediction("Djokovic N.", "Nadal R.")],
            feed_matches,
        )

        assert len(results) == 1

    def test_result_order_follows_predictions(self, predictions, feed_matches):
        results = reconcile_matches(predictions, feed_matches)

        assert [r.prediction for r in results] == predictions

    def test_to_dict(self, predictions, feed_matches):
        data = reconcile_matches(predictions[:1], feed_matches)[0].to_dict()

        assert data["team1"] == "Djokovic N."
        assert data["is_correct"] is True
        assert data["resolved_score"] == {
            "main_score": "2:1",
            "set_scores": "6:4, 3:6",
            "source": "feed",
            "display": "2:1 (6:4, 3:6)",
        }
        assert data["matched_team2"] == "Rafael Nadal"
        assert data["predicted_winner"] == "A"
        assert data["actual_winner"] == "A"
        assert data["swapped"] is False

    def test_pending_to_dict(self, predictions, feed_matches):
        data = reconcile_matches(predictions[2:3], feed_matches)[0].to_dict()

        assert data["resolved_score"]["main_score"] is None
        assert data["resolved_score"]["display"] == "Pending"
        assert data["is_correct"] == "undetermined"


class TestMatchIndex:
    """Tests for finding feed matches by prediction names."""

    def test_lookup(self, feed_matches):
        index = MatchIndex(feed_matches)

        lookup = index.lookup("Djokovic N.", "Nadal R.")

        assert lookup.match.match_id == "1001"
        assert not lookup.swapped

    def test_reversed_lookup(self, feed_matches):
        index = MatchIndex(feed_matches)

        lookup = index.lookup_key(MatchKey("Rafael Nadal", "Novak Djokovic"))

        assert lookup.swapped
        assert lookup.main_score == MainScore(1, 2)
        assert lookup.set_pairs == [(4, 6), (6, 3)]

    def test_players_who_did_not_meet(self, feed_matches):
        index = MatchIndex(feed_matches)

        assert index.lookup("Djokovic N.", "Sinner J.") is None

    def test_same_player_both_sides(self, feed_matches):
        index = MatchIndex(feed_matches)

        assert index.lookup("Djokovic N.", "N. Djokovic") is None

    def test_nameless_feed_entries_ignored(self):
        index = MatchIndex([AuthoritativeMatch(home_team_name="", away_team_name="X")])

        assert len(index) == 0


class TestResolveScore:

    def test_nothing_known(self, make_prediction):
        score = resolve_score(make_prediction("A", "B", final_score="tbd"), None)

        assert score == ResolvedScore()
        assert not score.known
        assert score.display() == PENDING

    def test_spreadsheet_main_score_only(self, make_prediction):
        score = resolve_score(make_prediction("A", "B", final_score="2-1"), None)

        assert score.display() == "2:1"
        assert score.source == SCORE_SOURCE_SPREADSHEET


class TestLatestRequestGate:
    """Tests for last-request-wins."""

    def test_current_result_kept(self):
        gate = LatestRequestGate()
        key = gate.begin(("tennis", "10th Apr 2025"))

        assert gate.commit(key, [1]) == [1]

    def test_superseded_result_dropped(self):
        gate = LatestRequestGate()
        first = gate.begin(("tennis", "10th Apr 2025"))
        gate.begin(("tennis", "11th Apr 2025"))

        assert gate.commit(first, [1]) is None
        assert not gate.is_current(first)


class BlockingCache:
    """Cache stub whose first fetch waits until released."""

    def __init__(self, matches):
        self.matches = matches
        self.release = asyncio.Event()
        self.calls = 0

    async def get_or_fetch(self, sport_type, date):
        self.calls += 1
        if self.calls == 1:
            await self.release.wait()
        return list(self.matches)


class TestReconciliationService:
    """Tests for the async service."""

    def test_reconcile(self, predictions, feed_matches):
        async def _run():
            cache = BlockingCache(feed_matches)
            cache.release.set()
            return await ReconciliationService(cache).reconcile(predictions, "tennis", "10th Apr 2025")

        results = asyncio.run(_run())

        assert by_team1(results)["Djokovic N."].is_correct is True

    def test_slow_earlier_request_is_discarded(self, predictions, feed_matches):
        """Test a selection change while a fetch is in flight drops the old result."""
        async def _run():
            cache = BlockingCache(feed_matches)
            service = ReconciliationService(cache)

            slow = asyncio.create_task(
                service.reconcile_latest(predictions, "tennis", "10th Apr 2025")
            )
            await asyncio.sleep(0)
            fast = await service.reconcile_latest(predictions, "tennis", "11th Apr 2025")
            cache.release.set()
            return await slow, fast

        slow_result, fast_result = asyncio.run(_run())

        assert slow_result is None
        assert len(fast_result) == 4
