"""
Unit tests for prediction ingestion.

Tests cover:
- Column alias resolution and priority
- Dropping tournament header rows
- Numeric and score cell coercion
- Bet-type specific fields
- Reading real .xlsx bytes through pandas/openpyxl
"""

import io
import math
from datetime import datetime, time

import pandas as pd
import pytest

from betcheck.services.prediction_ingestion import (
    ColumnResolver,
    IngestContext,
    LocalFileStorage,
    Prediction,
    dedupe_predictions,
    ingest,
    ingest_file,
    read_spreadsheet_rows,
    score_to_text,
    to_number,
    to_text,
)


def row(**cells):
    return dict(cells)


BASE_ROW = row(
    Date="10th Apr 2025, 14:30 EDT",
    Team_1="Novak Djokovic",
    Odd_1=1.85,
    Team_2="Rafael Nadal",
    Odd_2=2.05,
    Score_prediction="2:0(6:3, 6:3)",
    Confidence=72.5,
    Betting_predictions_team_1_win=61,
    Betting_predictions_team_2_win=39,
    Final_Score=None,
)


@pytest.fixture
def context():
    return IngestContext(
        sport_type="tennis",
        bet_type="normal",
        file_date="10th Apr 2025",
        source_file="tennis-10-04-2025.xlsx",
        file_id="uploads/tennis-10-04-2025.xlsx",
    )


class TestColumnResolution:
    """Tests for matching sheet headers onto fields."""

    def test_canonical_columns(self, context):
        predictions = ingest([BASE_ROW], context)

        assert len(predictions) == 1
        p = predictions[0]
        assert p.team1 == "Novak Djokovic"
        assert p.team2 == "Rafael Nadal"
        assert p.odd_team1 == 1.85
        assert p.odd_team2 == 2.05
        assert p.score_prediction == "2:0(6:3, 6:3)"
        assert p.confidence == 72.5
        assert p.betting_prediction_team1_win == 61
        assert p.betting_prediction_team2_win == 39
        assert p.final_score == ""

    def test_alternate_aliases(self, context):
        predictions = ingest([row(
            Team1="Carlos Alcaraz", Odd="1.5", Team2="Jannik Sinner", Odd2="2.6",
            ScorePrediction="2-1", Team1Win=55, Team2Win=45, FinalScore="2:1",
        )], context)

        p = predictions[0]
        assert p.team1 == "Carlos Alcaraz"
        assert p.odd_team1 == 1.5
        assert p.odd_team2 == 2.6
        assert p.score_prediction == "2-1"
        assert p.betting_prediction_team1_win == 55
        assert p.final_score == "2:1"

    def test_first_alias_wins(self):
        """Test Odd_1 is preferred when a sheet also has Odd."""
        resolver = ColumnResolver(["Odd", "Odd_1", "Team_1"])

        assert resolver.mapping["odd_team1"] == "Odd_1"

    def test_case_and_spacing_ignored(self):
        resolver = ColumnResolver(["team 1", "TEAM_2", "score prediction"])

        assert resolver.mapping["team1"] == "team 1"
        assert resolver.mapping["team2"] == "TEAM_2"
        assert resolver.mapping["score_prediction"] == "score prediction"

    def test_missing_fields_reported(self):
        resolver = ColumnResolver(["Team_1", "Team_2"])

        assert "team1" not in resolver.missing
        assert "confidence" in resolver.missing

    def test_rows_with_different_columns(self, context):
        """Test each row is resolved against its own columns."""
        predictions = ingest([
            BASE_ROW,
            row(Team1="Carlos Alcaraz", Team2="Jannik Sinner", Odd1=1.4),
        ], context)

        assert predictions[1].team1 == "Carlos Alcaraz"
        assert predictions[1].odd_team1 == 1.4


class TestRowFiltering:
    """Tests for rows that are not predictions."""

    def test_tournament_header_rows_dropped(self, context):
        rows = [
            row(Date="ATP Monte Carlo", Team_1=None, Team_2=None),
            BASE_ROW,
            row(Date=None, Team_1="Novak Djokovic", Team_2=float("nan")),
            row(Date=None, Team_1="  ", Team_2="Rafael Nadal"),
        ]

        predictions = ingest(rows, context)

        assert len(predictions) == 1
        assert predictions[0].row_index == 1

    def test_repeated_header_row_dropped(self, context):
        rows = [BASE_ROW, row(Date="Date", Team_1="Team_1", Team_2="Team_2")]

        assert len(ingest(rows, context)) == 1

    def test_no_rows(self, context):
        assert ingest([], context) == []


class TestValueCoercion:
    """Tests for reading numbers, text and scores."""

    def test_missing_numbers_default_to_zero(self, context):
        p = ingest([row(Team_1="A", Team_2="B", Odd_1=None, Odd_2="", Confidence=float("nan"))], context)[0]

        assert p.odd_team1 == 0
        assert p.odd_team2 == 0
        assert p.confidence == 0

    @pytest.mark.parametrize("raw, expected", [
        ("75%", 75),
        (" 1.85 ", 1.85),
        ("-3.5 games", -3.5),
        ("n/a", 0),
        (True, 0),
        (float("inf"), 0),
        (80.0, 80),
    ])
    def test_to_number(self, raw, expected):
        assert to_number(raw) == expected

    def test_whole_float_becomes_int(self):
        assert isinstance(to_number(75.0), int)
        assert not math.isnan(to_number(float("nan")))

    def test_to_text(self):
        assert to_text(2024.0) == "2024"
        assert to_text("  Nadal ") == "Nadal"
        assert to_text(None) == ""

    def test_score_stored_as_time(self):
        """Test "2:0" that Excel turned into 02:00 comes back as a score."""
        assert score_to_text(time(2, 0)) == "2:0"
        assert score_to_text(datetime(1900, 1, 1, 2, 1)) == "2:1"
        assert score_to_text("2:0(6:3, 6:3)") == "2:0(6:3, 6:3)"
        assert score_to_text(None) == ""


class TestDates:
    """Tests for date and standard_date."""

    def test_date_column_kept_and_file_date_is_standard(self, context):
        p = ingest([BASE_ROW], context)[0]

        assert p.date == "10th Apr 2025, 14:30 EDT"
        assert p.standard_date == "10th Apr 2025"

    def test_missing_date_falls_back_to_file_date(self, context):
        p = ingest([row(Team_1="A", Team_2="B")], context)[0]

        assert p.date == "10th Apr 2025"

    def test_standard_date_from_column_without_file_date(self):
        context = IngestContext(file_date=None)

        p = ingest([row(Date="11th Apr 2025, 09:00", Team_1="A", Team_2="B")], context)[0]

        assert p.standard_date == "11th Apr 2025"

    def test_real_date_cell(self):
        context = IngestContext(file_date=None)

        p = ingest([row(Date=datetime(2025, 4, 12, 15, 0), Team_1="A", Team_2="B")], context)[0]

        assert p.date == "12th Apr 2025"
        assert p.standard_date == "12th Apr 2025"


class TestBetTypeFields:
    """Tests for kelly and spread specific columns."""

    def test_kelly_fields(self):
        context = IngestContext(bet_type="kelly", file_date="10th Apr 2025")
        rows = [dict(BASE_ROW, Optimal_Stake_Part="0.04", Value_Bet="Novak Djokovic", Money_Line_1=150)]

        p = ingest(rows, context)[0]

        assert p.bet_type == "kelly"
        assert p.optimal_stake_part == 0.04
        assert p.bet_on == "Novak Djokovic"
        assert p.money_line1 is None

    def test_spread_fields(self):
        context = IngestContext(bet_type="spread", file_date="10th Apr 2025")
        rows = [dict(BASE_ROW, **{"Value Percent": "12.5%", "Money Line 1": -150, "MoneyLine2": 130, "BetOn": "Rafael Nadal"})]

        p = ingest(rows, context)[0]

        assert p.value_percent == 12.5
        assert p.money_line1 == -150
        assert p.money_line2 == 130
        assert p.bet_on == "Rafael Nadal"
        assert p.optimal_stake_part is None

    def test_normal_ignores_aux_columns(self, context):
        rows = [dict(BASE_ROW, Optimal_Stake_Part=0.04, Value_Bet="X")]

        p = ingest(rows, context)[0]

        assert p.optimal_stake_part is None
        assert p.bet_on is None
        assert "bet_on" not in p.to_dict()

    def test_to_dict_keeps_applicable_aux_fields(self):
        context = IngestContext(bet_type="kelly")

        data = ingest([dict(BASE_ROW, Optimal_Stake_Part=None)], context)[0].to_dict()

        assert data["optimal_stake_part"] == 0
        assert data["bet_on"] == ""
        assert "value_percent" not in data

    def test_unknown_types_normalised(self):
        context = IngestContext(sport_type="Table Tennis", bet_type="parlay")

        p = ingest([BASE_ROW], context)[0]

        assert p.sport_type == "table-tennis"
        assert p.bet_type == "normal"


class TestDedupe:

    def test_first_pair_kept_case_insensitively(self):
        predictions = [
            Prediction("Novak Djokovic", "Rafael Nadal", score_prediction="2:0"),
            Prediction("novak djokovic", "RAFAEL NADAL", score_prediction="0:2"),
            Prediction("Rafael Nadal", "Novak Djokovic"),
        ]

        unique = dedupe_predictions(predictions)

        assert len(unique) == 2
        assert unique[0].score_prediction == "2:0"


def _xlsx_bytes(frame: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def sheet_frame():
    return pd.DataFrame([
        {"Date": "ATP Monte Carlo", "Team_1": None, "Odd_1": None, "Team_2": None,
         "Odd_2": None, "Score_prediction": None, "Confidence": None,
         "Optimal_Stake_Part": None, "Value_Bet": None},
        {"Date": "10th Apr 2025, 14:30 EDT", "Team_1": "Djokovic N.", "Odd_1": 1.85,
         "Team_2": "Nadal R.", "Odd_2": 2.05, "Score_prediction": "2:0(6:3, 6:3)",
         "Confidence": 72, "Optimal_Stake_Part": 0.04, "Value_Bet": "Djokovic N."},
        {"Date": "10th Apr 2025, 16:00 EDT", "Team_1": "Alcaraz C.", "Odd_1": 1.5,
         "Team_2": "Sinner J.", "Odd_2": 2.6, "Score_prediction": "1:2",
         "Confidence": 55, "Optimal_Stake_Part": None, "Value_Bet": None},
    ])


class TestSpreadsheetFiles:
    """Tests for reading .xlsx workbooks."""

    def test_read_spreadsheet_rows(self, sheet_frame):
        rows = read_spreadsheet_rows(_xlsx_bytes(sheet_frame))

        assert len(rows) == 3
        assert rows[0]["Team_1"] is None
        assert rows[1]["Team_1"] == "Djokovic N."
        assert rows[1]["Odd_1"] == 1.85

    def test_ingest_file(self, tmp_path, sheet_frame):
        (tmp_path / "tennis-kelly-10-04-2025.xlsx").write_bytes(_xlsx_bytes(sheet_frame))

        result = ingest_file(LocalFileStorage(tmp_path), "tennis-kelly-10-04-2025.xlsx")

        assert result.rows_read == 3
        assert result.rows_skipped == 1
        assert result.context.bet_type == "kelly"
        assert result.context.file_date == "10th Apr 2025"

        first, second = result.predictions
        assert first.team1 == "Djokovic N."
        assert first.standard_date == "10th Apr 2025"
        assert first.optimal_stake_part == 0.04
        assert first.bet_on == "Djokovic N."
        assert first.source_file == "tennis-kelly-10-04-2025.xlsx"
        assert first.row_index == 1
        assert second.optimal_stake_part == 0
        assert second.bet_on == ""

    def test_overrides(self, tmp_path, sheet_frame):
        (tmp_path / "upload.xlsx").write_bytes(_xlsx_bytes(sheet_frame))

        result = ingest_file(
            LocalFileStorage(tmp_path), "upload.xlsx",
            sport_type="table-tennis", bet_type="kelly",
        )

        assert result.context.sport_type == "table-tennis"
        assert result.context.file_date is None
        assert result.predictions[0].standard_date == "10th Apr 2025"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalFileStorage(tmp_path).fetch("nope.xlsx")
