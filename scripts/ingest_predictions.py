#!/usr/bin/env python3
"""
Ingest prediction spreadsheets into the database.

Sport type, bet type and date are read from the file names
(e.g. tennis-kelly-10-04-2025.xlsx) unless overridden.

Usage:
    python scripts/ingest_predictions.py uploads/tennis-10-04-2025.xlsx

Several files, forcing the bet type:
    python scripts/ingest_predictions.py uploads/*.xlsx --bet-type kelly

Dry run (parse and report without writing anything):
    python scripts/ingest_predictions.py uploads/*.xlsx --dry-run
"""
from __future__ import annotations

import argparse
import logging
import sys
import zipfile
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from betcheck.config import settings
from betcheck.db import get_session, init_db
from betcheck.services.prediction_ingestion import LocalFileStorage, ingest_file
from betcheck.services.predictions import PredictionRepository

logger = logging.getLogger("ingest_predictions")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ingest prediction spreadsheets.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="Spreadsheet files (.xlsx) to ingest.",
    )
    parser.add_argument(
        "--sport-type",
        choices=["tennis", "table-tennis"],
        default=None,
        help="Override the sport type from the file name.",
    )
    parser.add_argument(
        "--bet-type",
        choices=["normal", "spread", "kelly"],
        default=None,
        help="Override the bet type from the file name.",
    )
    parser.add_argument(
        "--skip-processed",
        action="store_true",
        help="Skip files that were already ingested.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse files but do not write to the database.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first (local SQLite databases).",
    )
    return parser


def _locate(file_arg: str) -> tuple[LocalFileStorage, str]:
    """Storage and stored path for a file argument.

    Existing local files are read in place; anything else is looked up in
    the upload store (settings.file_storage_root).
    """
    path = Path(file_arg)
    if path.is_file():
        return LocalFileStorage(path.parent), path.name
    return LocalFileStorage(settings.file_storage_root), file_arg


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    print(f"PREDICTION INGEST  files={len(args.files)}  dry_run={args.dry_run}")
    print("-" * 60)

    if args.create_tables:
        init_db()

    failures = 0
    total_predictions = 0

    with get_session() as session:
        repo = PredictionRepository(session)

        for file_arg in args.files:
            storage, stored_path = _locate(file_arg)
            name = Path(stored_path).name

            if args.skip_processed and repo.is_file_processed(stored_path):
                print(f"{name}: already processed, skipped")
                continue

            try:
                result = ingest_file(
                    storage,
                    stored_path,
                    sport_type=args.sport_type,
                    bet_type=args.bet_type,
                )
            except (OSError, ValueError, zipfile.BadZipFile) as exc:
                logger.error("Failed to read %s: %s", file_arg, exc)
                failures += 1
                continue

            context = result.context
            print(
                f"{name}: {len(result.predictions)} predictions "
                f"({context.sport_type}/{context.bet_type}, date={context.file_date or '-'}, "
                f"skipped rows={result.rows_skipped})"
            )
            total_predictions += len(result.predictions)

            if args.dry_run:
                continue

            stats = repo.upsert_predictions(result.predictions)
            repo.record_processed_file(result)
            print(f"  created={stats.created} updated={stats.updated}")

        if args.dry_run:
            session.rollback()
            print("(dry run, nothing written)")

    print("-" * 60)
    print(f"Predictions:  {total_predictions}")
    print(f"Failed files: {failures}")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
