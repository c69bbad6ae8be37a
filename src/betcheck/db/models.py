"""
SQLAlchemy ORM models for BetCheck.

Predictions are stored in one table and partitioned by a collection name
derived from sport type and bet type ('tennis', 'tennis-spread',
'tennis-kelly', 'table-tennis', 'table-tennis-kelly').

Key design decisions:
- A prediction is identified by collection, standard date and the
  lower-cased team names (team1_key / team2_key), so re-uploading a sheet
  updates rows instead of duplicating them
- Results are never joined by foreign key; they are matched to
  predictions by player name at query time
- Feed responses can be cached in the database so several processes
  share one fetch per (sport type, date)

Tables:
- predictions: One forecasted match outcome per row
- processed_files: Uploaded spreadsheets that have been ingested
- cached_result_sets: Results feed responses keyed by sport type and date
"""

from datetime import date as calendar_date
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Prediction Models
# =============================================================================

class PredictionRecord(Base):
    """
    A stored prediction.

    The date column keeps the sheet's free text ("10th Apr 2025, 14:30 EDT");
    standard_date is the bare "10th Apr 2025" used for grouping and
    match_date is the same day as a real date for ordering.

    Bet-type specific columns are NULL for bet types that don't carry them:
    - kelly: optimal_stake_part, bet_on
    - spread: value_percent, money_line1, money_line2, bet_on
    """
    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Partitioning
    collection: Mapped[str] = mapped_column(String(50), nullable=False)
    sport_type: Mapped[str] = mapped_column(String(20), nullable=False)
    bet_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Dates
    date: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    standard_date: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    match_date: Mapped[Optional[calendar_date]] = mapped_column(Date, nullable=True)

    # Teams / players as written in the sheet
    team1: Mapped[str] = mapped_column(String(200), nullable=False)
    team2: Mapped[str] = mapped_column(String(200), nullable=False)

    # Lower-cased team names, part of the upsert key
    team1_key: Mapped[str] = mapped_column(String(200), nullable=False)
    team2_key: Mapped[str] = mapped_column(String(200), nullable=False)

    # ==========================================================================
    # Prediction values
    # ==========================================================================

    # Decimal odds (e.g. 1.50)
    odd_team1: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    odd_team2: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # e.g. "2:0(6:3, 6:3)"
    score_prediction: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    betting_prediction_team1_win: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    betting_prediction_team2_win: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Free text from the sheet, or the feed score once reconciled
    final_score: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Bet-type specific
    optimal_stake_part: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    value_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    money_line1: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    money_line2: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bet_on: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # ==========================================================================
    # Provenance
    # ==========================================================================

    source_file: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    file_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    row_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    processed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "collection", "standard_date", "team1_key", "team2_key",
            name="uq_prediction_collection_date_teams",
        ),
        Index("idx_predictions_collection_match_date", "collection", "match_date"),
        Index("idx_predictions_collection_standard_date", "collection", "standard_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<PredictionRecord(collection='{self.collection}', date='{self.standard_date}', "
            f"'{self.team1}' vs '{self.team2}')>"
        )


class ProcessedFile(Base):
    """
    An ingested spreadsheet.

    file_id is whatever identifies the upload (storage path or id); ingesting
    the same file_id again updates the row.
    """
    __tablename__ = "processed_files"

    id: Mapped[int] = mapped_column(primary_key=True)
    file_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)

    collection: Mapped[str] = mapped_column(String(50), nullable=False)
    sport_type: Mapped[str] = mapped_column(String(20), nullable=False)
    bet_type: Mapped[str] = mapped_column(String(20), nullable=False)
    file_date: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    prediction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    processed_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<ProcessedFile(file='{self.file_name}', predictions={self.prediction_count})>"


# =============================================================================
# Results Cache
# =============================================================================

class CachedResultSetRecord(Base):
    """
    One cached results feed response.

    matches holds AuthoritativeMatch.to_dict() entries; fetched_at is the
    cache clock's timestamp in seconds.
    """
    __tablename__ = "cached_result_sets"

    id: Mapped[int] = mapped_column(primary_key=True)
    sport_type: Mapped[str] = mapped_column(String(20), nullable=False)
    api_date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    matches: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    fetched_at: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("sport_type", "api_date", name="uq_cached_result_set_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<CachedResultSetRecord(sport='{self.sport_type}', date='{self.api_date}', "
            f"matches={len(self.matches or [])})>"
        )
