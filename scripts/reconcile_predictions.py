#!/usr/bin/env python3
"""
Reconcile stored predictions for a date against the results feed.

Prints one line per prediction: teams, predicted score, realised score and
verdict.

Usage:
    python scripts/reconcile_predictions.py --date "10th Apr 2025"

Table tennis kelly predictions, saving feed scores as final scores:
    python scripts/reconcile_predictions.py --date "10th Apr 2025" \\
        --sport-type table-tennis --bet-type kelly --write-final-scores

Ignore results cached by an earlier run:
    python scripts/reconcile_predictions.py --date "10th Apr 2025" --refresh
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from betcheck.config import settings
from betcheck.db import get_session
from betcheck.feed.cache import ResultsCache, SqlCacheStorage
from betcheck.feed.client import ResultsFeedClient
from betcheck.services.predictions import PredictionRepository
from betcheck.services.reconciliation import (
    SCORE_SOURCE_FEED,
    ReconciledPrediction,
    ReconciliationService,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile predictions with match results.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--date",
        required=True,
        help='Prediction date, e.g. "10th Apr 2025".',
    )
    parser.add_argument(
        "--sport-type",
        choices=["tennis", "table-tennis"],
        default="tennis",
    )
    parser.add_argument(
        "--bet-type",
        choices=["normal", "spread", "kelly"],
        default="normal",
    )
    parser.add_argument(
        "--write-final-scores",
        action="store_true",
        help="Store feed scores in the predictions' final_score column.",
    )
    parser.add_argument(
        "--memory-cache",
        action="store_true",
        help="Keep fetched results in memory only (default: database cache).",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Drop any cached results for the date and fetch them again.",
    )
    return parser


async def _reconcile(predictions, sport_type: str, date: str, memory_cache: bool, refresh: bool):
    async with ResultsFeedClient() as client:
        storage = None if memory_cache else SqlCacheStorage()
        cache = ResultsCache(client.fetch_matches, storage=storage)
        if refresh:
            cache.invalidate(sport_type, date)
        service = ReconciliationService(cache)
        return await service.reconcile(predictions, sport_type, date)


def _format_line(item: ReconciledPrediction) -> str:
    prediction = item.prediction
    return (
        f"{prediction.team1:<28} {prediction.team2:<28} "
        f"{prediction.score_prediction or '-':<16} {item.display_score:<20} {item.outcome_label}"
    )


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    with get_session() as session:
        repo = PredictionRepository(session)
        predictions = repo.get_all_for_date(args.sport_type, args.bet_type, args.date)

        if not predictions:
            print(f"No {args.sport_type}/{args.bet_type} predictions for {args.date}")
            return 1

        results = asyncio.run(
            _reconcile(
                predictions, args.sport_type, args.date, args.memory_cache, args.refresh,
            )
        )

        print(f"RECONCILE  {args.sport_type}/{args.bet_type}  date={args.date}")
        print("-" * 100)
        for item in results:
            print(_format_line(item))

        correct = sum(1 for r in results if r.is_correct is True)
        incorrect = sum(1 for r in results if r.is_correct is False)
        undetermined = len(results) - correct - incorrect

        print("-" * 100)
        print(f"Correct:      {correct}")
        print(f"Incorrect:    {incorrect}")
        print(f"Undetermined: {undetermined}")

        if args.write_final_scores:
            updates = [
                (r.prediction, r.display_score)
                for r in results
                if r.resolved_score.source == SCORE_SOURCE_FEED
            ]
            changed = repo.update_final_scores(updates)
            print(f"Final scores written: {changed}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
