"""
Prediction ingestion service - turns spreadsheet rows into predictions.

Prediction sheets are produced by several tools and don't agree on column
names: the first team may be "Team_1" or "Team1", its odds "Odd_1", "Odd1"
or just "Odd". Each logical field therefore has an ordered list of aliases
(FIELD_ALIASES); the first alias present in a row wins.

Other things sheets do that ingestion has to cope with:
- Tournament header rows: only the first cell is filled in, so one or both
  team names are empty. These rows are dropped.
- Numbers as text ("75%", "1.85 ") or missing/NaN. Numeric fields
  default to 0 rather than failing the row.
- Scores such as "2:0" that Excel stored as a time of day.
- Bet-type specific columns (kelly stake, spread value), which are only
  read for the matching bet type.

Usage:
    from betcheck.services.prediction_ingestion import IngestContext, ingest

    context = IngestContext(sport_type="tennis", bet_type="kelly",
                            file_date="10th Apr 2025")
    predictions = ingest(rows, context)

    # Or straight from a stored file
    result = ingest_file(LocalFileStorage("uploads"), "tennis-kelly-10-04-2025.xlsx")
"""

import io
import logging
import math
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd

from betcheck.bet_types import BET_TYPE_FIELDS, normalize_bet_type, normalize_sport_type
from betcheck.parsers.dates import extract_display_date, format_display_date, parse_file_name

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]

# Ordered aliases per logical field. Earlier aliases take priority.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("Date",),
    "team1": ("Team_1", "Team1"),
    "odd_team1": ("Odd_1", "Odd1", "Odd"),
    "team2": ("Team_2", "Team2"),
    "odd_team2": ("Odd_2", "Odd2"),
    "score_prediction": (
        "Score_prediction", "Score_Prediction", "Score Prediction", "ScorePrediction",
    ),
    "confidence": ("Confidence",),
    "betting_prediction_team1_win": ("Betting_predictions_team_1_win", "Team1Win"),
    "betting_prediction_team2_win": ("Betting_predictions_team_2_win", "Team2Win"),
    "final_score": ("Final_Score", "FinalScore"),
    # kelly
    "optimal_stake_part": (
        "Optimal_Stake_Part", "OptimalStakePart", "Optimal Stake", "Optimal",
    ),
    # spread
    "value_percent": ("Value_Percent", "ValuePercent", "Value Percent", "value_percent"),
    "money_line1": ("Money_Line_1", "MoneyLine1", "Money Line 1"),
    "money_line2": ("Money_Line_2", "MoneyLine2", "Money Line 2"),
    # kelly and spread
    "bet_on": (
        "Value_Bet", "Value Bet", "ValueBet", "Bet_On", "BetOn", "bet_on", "Bet On",
    ),
}

NUMERIC_FIELDS = frozenset({
    "odd_team1",
    "odd_team2",
    "confidence",
    "betting_prediction_team1_win",
    "betting_prediction_team2_win",
    "optimal_stake_part",
    "value_percent",
    "money_line1",
    "money_line2",
})

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))")

_AUX_FIELDS: tuple[str, ...] = (
    "optimal_stake_part", "value_percent", "money_line1", "money_line2", "bet_on",
)


@dataclass
class Prediction:
    """
    One forecasted match outcome.

    There is no natural key; within a result set a prediction is unique by
    its (team1, team2) pair, case-insensitively. Everything except
    final_score is fixed once ingested.
    """

    # Required fields (no defaults) - must come first in dataclass
    # ============================================================

    team1: str
    team2: str

    # Optional fields (with defaults)
    # ================================

    # Free text, may carry a time: "10th Apr 2025, 14:30 EDT"
    date: str = ""

    # Decimal odds
    odd_team1: float = 0
    odd_team2: float = 0

    score_prediction: str = ""  # e.g. "2:0(6:3, 6:3)"
    confidence: float = 0  # 0-100
    betting_prediction_team1_win: float = 0
    betting_prediction_team2_win: float = 0
    final_score: str = ""

    sport_type: str = "tennis"
    bet_type: str = "normal"

    # "10th Apr 2025", from the file name or the date column
    standard_date: str = ""

    # Provenance
    source_file: str = ""
    file_id: str = ""
    row_index: int = 0

    # Bet-type specific, None when the bet type doesn't carry them
    optimal_stake_part: Optional[float] = None
    value_percent: Optional[float] = None
    money_line1: Optional[float] = None
    money_line2: Optional[float] = None
    bet_on: Optional[str] = None

    @property
    def pair_key(self) -> tuple[str, str]:
        """Case-insensitive (team1, team2) identity within a result set."""
        return (self.team1.lower(), self.team2.lower())

    def to_dict(self) -> dict:
        """Serialise, leaving out bet-type fields that don't apply."""
        data = asdict(self)
        for name in _AUX_FIELDS:
            if data[name] is None:
                del data[name]
        return data

    def __repr__(self) -> str:
        return f"<Prediction({self.team1} vs {self.team2}, {self.score_prediction or '-'})>"


@dataclass
class IngestContext:
    """
    Where a batch of rows came from.

    Attributes:
        sport_type: 'tennis' or 'table-tennis'
        bet_type: 'normal', 'spread' or 'kelly'
        file_date: "10th Apr 2025" date from the file name, if any
        source_file: Original file name
        file_id: Storage identifier of the file
    """
    sport_type: str = "tennis"
    bet_type: str = "normal"
    file_date: Optional[str] = None
    source_file: str = ""
    file_id: str = ""


@dataclass
class IngestResult:
    """Outcome of ingesting one stored file."""
    file_id: str
    context: IngestContext
    predictions: list[Prediction] = field(default_factory=list)
    rows_read: int = 0

    @property
    def rows_skipped(self) -> int:
        return self.rows_read - len(self.predictions)


# =============================================================================
# Value coercion
# =============================================================================


def is_missing(value: Any) -> bool:
    """True for None, blank strings and NaN/NaT cells."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any, default: float = 0) -> float:
    """
    Read a numeric cell.

    Native numbers pass through; strings are read up to the first
    non-numeric character ("75%" → 75). Missing or unreadable → default.
    """
    if is_missing(value) or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        number = float(value)
        return default if math.isnan(number) or math.isinf(number) else _tidy(number)

    found = _LEADING_NUMBER.match(str(value))
    if not found:
        return default
    return _tidy(float(found.group(1)))


def _tidy(number: float) -> float:
    """Return whole numbers as int so 75.0 prints as 75."""
    return int(number) if number.is_integer() else number


def to_text(value: Any) -> str:
    """Read a text cell ("" when missing)."""
    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def score_to_text(value: Any) -> str:
    """
    Read a score cell.

    Excel stores "2:0" typed into a cell as the time 02:00; those come back
    as "2:0".
    """
    if is_missing(value):
        return ""
    if isinstance(value, datetime):
        return f"{value.hour}:{value.minute}"
    if isinstance(value, time):
        return f"{value.hour}:{value.minute}"
    return to_text(value)


def date_to_text(value: Any) -> str:
    """Read a date cell; real dates are rendered as "10th Apr 2025"."""
    if is_missing(value):
        return ""
    if isinstance(value, datetime):
        return format_display_date(value.date())
    if isinstance(value, date):
        return format_display_date(value)
    return to_text(value)


# =============================================================================
# Column resolution
# =============================================================================


def _column_token(name: str) -> str:
    return re.sub(r"[\s_]+", "", str(name)).lower()


class ColumnResolver:
    """
    Maps logical fields onto the actual column names of a sheet.

    Lookup per field: each alias in order, first as an exact column name,
    then ignoring case, spaces and underscores.
    """

    def __init__(self, columns: Iterable[str]):
        self.columns = [str(c) for c in columns]
        self._by_token: dict[str, str] = {}
        for column in self.columns:
            self._by_token.setdefault(_column_token(column), column)
        self.mapping: dict[str, Optional[str]] = {
            name: self._resolve(aliases) for name, aliases in FIELD_ALIASES.items()
        }

    def _resolve(self, aliases: tuple[str, ...]) -> Optional[str]:
        for alias in aliases:
            if alias in self.columns:
                return alias
        for alias in aliases:
            column = self._by_token.get(_column_token(alias))
            if column is not None:
                return column
        return None

    def get(self, row: Row, field_name: str) -> Any:
        column = self.mapping.get(field_name)
        if column is None:
            return None
        return row.get(column)

    @property
    def missing(self) -> list[str]:
        return [name for name, column in self.mapping.items() if column is None]


# =============================================================================
# Ingestion
# =============================================================================


def ingest(rows: Iterable[Row], context: IngestContext) -> list[Prediction]:
    """
    Convert spreadsheet rows into predictions.

    Args:
        rows: One mapping per sheet row, keyed by column header
        context: Sport type, bet type, file date and provenance for the batch

    Returns:
        Predictions in row order. Rows without both team names (tournament
        headers, blank lines) are dropped.
    """
    sport_type = normalize_sport_type(context.sport_type)
    bet_type = normalize_bet_type(context.bet_type)
    aux_fields = BET_TYPE_FIELDS[bet_type]

    resolver: Optional[ColumnResolver] = None
    resolved_for: tuple = ()

    predictions: list[Prediction] = []
    dropped = 0

    for row_index, row in enumerate(rows):
        columns = tuple(row.keys())
        if resolver is None or columns != resolved_for:
            resolver = ColumnResolver(columns)
            resolved_for = columns

        team1 = to_text(resolver.get(row, "team1"))
        team2 = to_text(resolver.get(row, "team2"))

        if not team1 or not team2 or _is_repeated_header(team1, team2):
            dropped += 1
            continue

        date_text = date_to_text(resolver.get(row, "date")) or (context.file_date or "")
        standard_date = context.file_date or extract_display_date(date_text)

        prediction = Prediction(
            team1=team1,
            team2=team2,
            date=date_text,
            odd_team1=to_number(resolver.get(row, "odd_team1")),
            odd_team2=to_number(resolver.get(row, "odd_team2")),
            score_prediction=score_to_text(resolver.get(row, "score_prediction")),
            confidence=to_number(resolver.get(row, "confidence")),
            betting_prediction_team1_win=to_number(
                resolver.get(row, "betting_prediction_team1_win")
            ),
            betting_prediction_team2_win=to_number(
                resolver.get(row, "betting_prediction_team2_win")
            ),
            final_score=score_to_text(resolver.get(row, "final_score")),
            sport_type=sport_type,
            bet_type=bet_type,
            standard_date=standard_date,
            source_file=context.source_file,
            file_id=context.file_id,
            row_index=row_index,
        )

        for name in aux_fields:
            raw = resolver.get(row, name)
            if name in NUMERIC_FIELDS:
                setattr(prediction, name, to_number(raw))
            else:
                setattr(prediction, name, to_text(raw))

        predictions.append(prediction)

    logger.info(
        "Ingested %d %s/%s predictions from %s (%d rows dropped)",
        len(predictions), sport_type, bet_type,
        context.source_file or "rows", dropped,
    )
    return predictions


def _is_repeated_header(team1: str, team2: str) -> bool:
    """A header line repeated inside the sheet: Team_1 | Team_2 as values."""
    return (
        team1 in FIELD_ALIASES["team1"]
        and team2 in FIELD_ALIASES["team2"]
    )


def dedupe_predictions(predictions: Iterable[Prediction]) -> list[Prediction]:
    """
    Keep the first prediction for each (team1, team2) pair.

    Comparison ignores case; order of first appearance is kept.
    """
    seen: set[tuple[str, str]] = set()
    unique: list[Prediction] = []
    for prediction in predictions:
        if prediction.pair_key in seen:
            continue
        seen.add(prediction.pair_key)
        unique.append(prediction)
    return unique


# =============================================================================
# Files
# =============================================================================


class LocalFileStorage:
    """Reads uploaded files from a directory on disk."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def fetch(self, path: str) -> bytes:
        """
        Return the bytes of a stored file.

        Raises:
            FileNotFoundError: If the file doesn't exist under root
        """
        full_path = self.root / path
        if not full_path.is_file():
            raise FileNotFoundError(f"No stored file at {full_path}")
        return full_path.read_bytes()


def read_spreadsheet_rows(content: bytes) -> list[dict[str, Any]]:
    """
    Read the first sheet of an .xlsx workbook into one dict per row.

    Column headers come from the first row. Empty cells are None.
    """
    frame = pd.read_excel(io.BytesIO(content), sheet_name=0, engine="openpyxl")
    frame = frame.astype(object).where(frame.notna(), None)
    frame.columns = [str(c).strip() for c in frame.columns]
    return frame.to_dict(orient="records")


def ingest_file(
    storage: LocalFileStorage,
    path: str,
    sport_type: Optional[str] = None,
    bet_type: Optional[str] = None,
) -> IngestResult:
    """
    Fetch a stored spreadsheet and ingest it.

    Sport type, bet type and date come from the file name unless given.

    Args:
        storage: Where the file lives
        path: Path of the file within storage
        sport_type: Override for the sport type in the file name
        bet_type: Override for the bet type in the file name

    Returns:
        IngestResult with the predictions and row counts
    """
    file_name = Path(path).name
    info = parse_file_name(file_name)

    context = IngestContext(
        sport_type=normalize_sport_type(sport_type or info.sport_type),
        bet_type=normalize_bet_type(bet_type or info.bet_type),
        file_date=info.date,
        source_file=file_name,
        file_id=path,
    )
    if info.date is None:
        logger.warning("No date in file name '%s'; using the date column", file_name)

    rows = read_spreadsheet_rows(storage.fetch(path))
    predictions = ingest(rows, context)

    return IngestResult(
        file_id=path,
        context=context,
        predictions=predictions,
        rows_read=len(rows),
    )
