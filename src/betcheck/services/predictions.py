"""
Prediction store - reading and writing predictions in the database.

Predictions are partitioned by collection (see bet_types.get_collection_name)
and identified within a collection by standard date plus the lower-cased
team pair. Writing the same sheet twice therefore updates rows in place.

Listings are cursor paginated. The cursor is opaque to callers: pass back
the next_cursor of the previous page to continue.

Usage:
    from betcheck.services.predictions import PredictionRepository

    with get_session() as session:
        repo = PredictionRepository(session)
        stats = repo.upsert_predictions(predictions)
        dates = repo.get_prediction_dates("tennis", "kelly")
        page = repo.get_predictions_by_date("tennis", "kelly", dates[0])
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from itertools import islice
from typing import Iterable, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from betcheck.bet_types import get_collection_name
from betcheck.config import settings
from betcheck.db.models import PredictionRecord, ProcessedFile
from betcheck.parsers.dates import extract_time, parse_display_date, time_to_minutes
from betcheck.services.prediction_ingestion import IngestResult, Prediction, dedupe_predictions

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

# Stand-in ordering date for predictions whose date couldn't be parsed
_NO_DATE = date(1970, 1, 1)

RecordKey = tuple[str, str, str, str]


@dataclass
class UpsertStats:
    """Statistics from writing a batch of predictions."""
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped_duplicate: int = 0

    def summary(self) -> str:
        """Return a human-readable summary of the write."""
        return "\n".join([
            "Prediction upsert complete:",
            f"  Total predictions:        {self.total}",
            f"  Created:                  {self.created}",
            f"  Updated:                  {self.updated}",
            f"  Skipped (in-batch dup):   {self.skipped_duplicate}",
        ])


@dataclass
class PredictionPage:
    """One page of a prediction listing."""
    items: list[Prediction] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def record_key(prediction: Prediction) -> RecordKey:
    """Identity of a prediction in the store."""
    return (
        get_collection_name(prediction.sport_type, prediction.bet_type),
        prediction.standard_date,
        prediction.team1.lower(),
        prediction.team2.lower(),
    )


def sort_predictions_by_time(predictions: Iterable[Prediction]) -> list[Prediction]:
    """
    Order predictions by kick-off time ("14:30 EDT" in the date text).

    Predictions without a time go last; ties keep their order.
    """
    return sorted(predictions, key=lambda p: time_to_minutes(extract_time(p.date)))


def _chunked(items: list[Prediction], size: int) -> list[list[Prediction]]:
    """Split a list into fixed-size chunks."""
    if size <= 0:
        return [items]
    iterator = iter(items)
    chunks: list[list[Prediction]] = []
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return chunks
        chunks.append(chunk)


class PredictionRepository:
    """Database access for predictions and processed files."""

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert_predictions(
        self,
        predictions: Iterable[Prediction],
        batch_size: int = BATCH_SIZE,
    ) -> UpsertStats:
        """
        Insert new predictions and update ones already stored.

        Work is flushed every batch_size predictions. The caller's session
        owns the transaction.

        Args:
            predictions: Predictions to write
            batch_size: Predictions per flush

        Returns:
            UpsertStats with created / updated counts
        """
        items = list(predictions)
        stats = UpsertStats(total=len(items))
        seen: set[RecordKey] = set()

        for batch in _chunked(items, batch_size):
            existing = self._load_existing(batch)

            for prediction in batch:
                key = record_key(prediction)
                if key in seen:
                    stats.skipped_duplicate += 1
                    continue
                seen.add(key)

                record = existing.get(key)
                if record is None:
                    record = PredictionRecord(
                        collection=key[0],
                        team1_key=key[2],
                        team2_key=key[3],
                    )
                    self.session.add(record)
                    stats.created += 1
                else:
                    stats.updated += 1

                self._apply(record, prediction)

            self.session.flush()

        logger.info(stats.summary())
        return stats

    def record_processed_file(
        self,
        result: IngestResult,
        error_message: Optional[str] = None,
    ) -> ProcessedFile:
        """Create or refresh the processed_files row for an ingested file."""
        context = result.context
        record = self.session.execute(
            select(ProcessedFile).where(ProcessedFile.file_id == result.file_id)
        ).scalar_one_or_none()

        if record is None:
            record = ProcessedFile(file_id=result.file_id)
            self.session.add(record)

        record.file_name = context.source_file or result.file_id
        record.collection = get_collection_name(context.sport_type, context.bet_type)
        record.sport_type = context.sport_type
        record.bet_type = context.bet_type
        record.file_date = context.file_date
        record.prediction_count = len(result.predictions)
        record.error_message = error_message
        record.processed_at = datetime.utcnow()

        self.session.flush()
        return record

    def is_file_processed(self, file_id: str) -> bool:
        found = self.session.execute(
            select(ProcessedFile.id).where(ProcessedFile.file_id == file_id)
        ).first()
        return found is not None

    def update_final_scores(self, updates: Iterable[tuple[Prediction, str]]) -> int:
        """
        Store realised scores on stored predictions.

        Args:
            updates: (prediction, final score) pairs

        Returns:
            Number of stored rows whose final_score changed
        """
        changed = 0
        for prediction, final_score in updates:
            record = self._get_record(record_key(prediction))
            if record is None:
                logger.debug("No stored prediction for %r, final score not saved", prediction)
                continue
            if record.final_score != final_score:
                record.final_score = final_score
                changed += 1

        self.session.flush()
        return changed

    # =========================================================================
    # Reads
    # =========================================================================

    def get_prediction_dates(self, sport_type: str, bet_type: str = "normal") -> list[str]:
        """
        Unique "10th Apr 2025" dates with predictions, newest first.

        Dates that can't be parsed are listed last.
        """
        collection = get_collection_name(sport_type, bet_type)
        values = self.session.execute(
            select(PredictionRecord.standard_date)
            .where(PredictionRecord.collection == collection)
            .distinct()
        ).scalars().all()

        dates = [value for value in values if value]
        return sorted(
            dates,
            key=lambda value: parse_display_date(value) or _NO_DATE,
            reverse=True,
        )

    def get_predictions_by_sport_type(
        self,
        sport_type: str,
        bet_type: str = "normal",
        page_size: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> PredictionPage:
        """
        List a collection, newest match date first.

        Args:
            sport_type: 'tennis' or 'table-tennis'
            bet_type: 'normal', 'spread' or 'kelly'
            page_size: Items per page (settings.default_page_size if None)
            cursor: next_cursor from the previous page
        """
        size = page_size or settings.default_page_size
        collection = get_collection_name(sport_type, bet_type)
        order_date = func.coalesce(PredictionRecord.match_date, _NO_DATE)

        query = select(PredictionRecord).where(PredictionRecord.collection == collection)

        after = _decode_date_cursor(cursor)
        if after is not None:
            after_date, after_id = after
            query = query.where(
                or_(
                    order_date < after_date,
                    and_(order_date == after_date, PredictionRecord.id < after_id),
                )
            )

        records = self.session.execute(
            query.order_by(order_date.desc(), PredictionRecord.id.desc()).limit(size + 1)
        ).scalars().all()

        next_cursor = None
        if len(records) > size:
            records = records[:size]
            last = records[-1]
            next_cursor = f"{(last.match_date or _NO_DATE).isoformat()}|{last.id}"

        return PredictionPage(
            items=dedupe_predictions(_to_prediction(r) for r in records),
            next_cursor=next_cursor,
        )

    def get_predictions_by_date(
        self,
        sport_type: str,
        bet_type: str,
        standard_date: str,
        page_size: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> PredictionPage:
        """
        List one date of a collection in sheet order.

        Items within a page are deduplicated by team pair.
        """
        size = page_size or settings.default_page_size
        collection = get_collection_name(sport_type, bet_type)

        query = select(PredictionRecord).where(
            PredictionRecord.collection == collection,
            PredictionRecord.standard_date == standard_date,
        )
        after_id = _decode_id_cursor(cursor)
        if after_id is not None:
            query = query.where(PredictionRecord.id > after_id)

        records = self.session.execute(
            query.order_by(PredictionRecord.id.asc()).limit(size + 1)
        ).scalars().all()

        next_cursor = None
        if len(records) > size:
            records = records[:size]
            next_cursor = str(records[-1].id)

        return PredictionPage(
            items=dedupe_predictions(_to_prediction(r) for r in records),
            next_cursor=next_cursor,
        )

    def get_all_for_date(
        self,
        sport_type: str,
        bet_type: str,
        standard_date: str,
    ) -> list[Prediction]:
        """Every prediction for a date, deduplicated and in kick-off order."""
        collection = get_collection_name(sport_type, bet_type)
        records = self.session.execute(
            select(PredictionRecord)
            .where(
                PredictionRecord.collection == collection,
                PredictionRecord.standard_date == standard_date,
            )
            .order_by(PredictionRecord.id.asc())
        ).scalars().all()
        return sort_predictions_by_time(dedupe_predictions(_to_prediction(r) for r in records))

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    def _load_existing(self, batch: list[Prediction]) -> dict[RecordKey, PredictionRecord]:
        keys = {record_key(p) for p in batch}
        collections = {k[0] for k in keys}
        dates = {k[1] for k in keys}
        team1_keys = {k[2] for k in keys}

        records = self.session.execute(
            select(PredictionRecord).where(
                PredictionRecord.collection.in_(sorted(collections)),
                PredictionRecord.standard_date.in_(sorted(dates)),
                PredictionRecord.team1_key.in_(sorted(team1_keys)),
            )
        ).scalars().all()

        by_key = {
            (r.collection, r.standard_date, r.team1_key, r.team2_key): r
            for r in records
        }
        return {key: record for key, record in by_key.items() if key in keys}

    def _get_record(self, key: RecordKey) -> Optional[PredictionRecord]:
        collection, standard_date, team1_key, team2_key = key
        return self.session.execute(
            select(PredictionRecord).where(
                PredictionRecord.collection == collection,
                PredictionRecord.standard_date == standard_date,
                PredictionRecord.team1_key == team1_key,
                PredictionRecord.team2_key == team2_key,
            )
        ).scalar_one_or_none()

    @staticmethod
    def _apply(record: PredictionRecord, prediction: Prediction) -> None:
        record.sport_type = prediction.sport_type
        record.bet_type = prediction.bet_type
        record.date = prediction.date
        record.standard_date = prediction.standard_date
        record.match_date = parse_display_date(prediction.standard_date)
        record.team1 = prediction.team1
        record.team2 = prediction.team2
        record.odd_team1 = prediction.odd_team1
        record.odd_team2 = prediction.odd_team2
        record.score_prediction = prediction.score_prediction
        record.confidence = prediction.confidence
        record.betting_prediction_team1_win = prediction.betting_prediction_team1_win
        record.betting_prediction_team2_win = prediction.betting_prediction_team2_win
        record.final_score = prediction.final_score
        record.optimal_stake_part = prediction.optimal_stake_part
        record.value_percent = prediction.value_percent
        record.money_line1 = prediction.money_line1
        record.money_line2 = prediction.money_line2
        record.bet_on = prediction.bet_on
        record.source_file = prediction.source_file
        record.file_id = prediction.file_id
        record.row_index = prediction.row_index


def _to_prediction(record: PredictionRecord) -> Prediction:
    return Prediction(
        team1=record.team1,
        team2=record.team2,
        date=record.date,
        odd_team1=record.odd_team1,
        odd_team2=record.odd_team2,
        score_prediction=record.score_prediction,
        confidence=record.confidence,
        betting_prediction_team1_win=record.betting_prediction_team1_win,
        betting_prediction_team2_win=record.betting_prediction_team2_win,
        final_score=record.final_score,
        sport_type=record.sport_type,
        bet_type=record.bet_type,
        standard_date=record.standard_date,
        source_file=record.source_file,
        file_id=record.file_id,
        row_index=record.row_index,
        optimal_stake_part=record.optimal_stake_part,
        value_percent=record.value_percent,
        money_line1=record.money_line1,
        money_line2=record.money_line2,
        bet_on=record.bet_on,
    )


def _decode_id_cursor(cursor: Optional[str]) -> Optional[int]:
    if not cursor:
        return None
    try:
        return int(cursor)
    except ValueError:
        raise ValueError(f"Invalid cursor: {cursor!r}") from None


def _decode_date_cursor(cursor: Optional[str]) -> Optional[tuple[date, int]]:
    if not cursor:
        return None
    try:
        date_part, id_part = cursor.split("|", 1)
        return date.fromisoformat(date_part), int(id_part)
    except ValueError:
        raise ValueError(f"Invalid cursor: {cursor!r}") from None
