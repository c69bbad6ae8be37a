"""Outcome evaluation: did a prediction pick the right winner?

A prediction is judged on the winner only. "2:0" against an actual "2:1"
is correct; the exact score doesn't matter. When either score can't be
read, or the match hasn't produced a result yet, the verdict is
"undetermined", which is not the same as incorrect.

Actual scores must already be in team1/team2 order. Reversing a feed score
that was matched with home/away flipped is the reconciliation layer's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from betcheck.parsers.score import MainScore, parse_score

UNDETERMINED: Literal["undetermined"] = "undetermined"

Verdict = Union[bool, Literal["undetermined"]]


def _as_main_score(score: Union[str, MainScore, None]) -> Optional[MainScore]:
    if score is None:
        return None
    if isinstance(score, MainScore):
        return score
    return parse_score(score).main_score


def is_correct(
    score_prediction: Union[str, MainScore, None],
    actual_score: Union[str, MainScore, None],
) -> Verdict:
    """
    Compare predicted and actual winners.

    Args:
        score_prediction: Predicted score ("2:0(6:3, 6:3)", "2-0", ...)
        actual_score: Realised score in team1/team2 order, as text or MainScore

    Returns:
        True or False, or UNDETERMINED when either side has no readable
        main score or no winner (level score)

    Examples:
        >>> is_correct("2:0", "2:1")
        True
        >>> is_correct("2:0", "0:2")
        False
        >>> is_correct("2:0", "")
        'undetermined'
    """
    predicted = _as_main_score(score_prediction)
    actual = _as_main_score(actual_score)

    if predicted is None or actual is None:
        return UNDETERMINED

    if predicted.winner is None or actual.winner is None:
        return UNDETERMINED

    return predicted.winner == actual.winner


@dataclass(frozen=True)
class Outcome:
    """
    Verdict for one prediction with the winners it was decided on.

    Attributes:
        verdict: True, False or UNDETERMINED
        predicted_winner: 'A', 'B' or None
        actual_winner: 'A', 'B' or None
    """
    verdict: Verdict
    predicted_winner: Optional[str] = None
    actual_winner: Optional[str] = None

    @property
    def label(self) -> str:
        return verdict_label(self.verdict)


def evaluate_outcome(
    score_prediction: Union[str, MainScore, None],
    actual_score: Union[str, MainScore, None],
) -> Outcome:
    """Like is_correct, but also reports which side each score favours."""
    predicted = _as_main_score(score_prediction)
    actual = _as_main_score(actual_score)
    return Outcome(
        verdict=is_correct(predicted, actual),
        predicted_winner=predicted.winner if predicted else None,
        actual_winner=actual.winner if actual else None,
    )


def verdict_label(verdict: Verdict) -> str:
    """Human label for a verdict: 'correct', 'incorrect' or 'undetermined'."""
    if verdict == UNDETERMINED:
        return UNDETERMINED
    return "correct" if verdict else "incorrect"
