"""Create predictions, processed_files and cached_result_sets tables

Revision ID: 5a1e0c7d9b21
Revises:
Create Date: 2026-10-18 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "5a1e0c7d9b21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "predictions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("collection", sa.String(length=50), nullable=False),
        sa.Column("sport_type", sa.String(length=20), nullable=False),
        sa.Column("bet_type", sa.String(length=20), nullable=False),
        sa.Column("date", sa.String(length=100), nullable=False),
        sa.Column("standard_date", sa.String(length=30), nullable=False),
        sa.Column("match_date", sa.Date(), nullable=True),
        sa.Column("team1", sa.String(length=200), nullable=False),
        sa.Column("team2", sa.String(length=200), nullable=False),
        sa.Column("team1_key", sa.String(length=200), nullable=False),
        sa.Column("team2_key", sa.String(length=200), nullable=False),
        sa.Column("odd_team1", sa.Float(), nullable=False),
        sa.Column("odd_team2", sa.Float(), nullable=False),
        sa.Column("score_prediction", sa.String(length=100), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("betting_prediction_team1_win", sa.Float(), nullable=False),
        sa.Column("betting_prediction_team2_win", sa.Float(), nullable=False),
        sa.Column("final_score", sa.String(length=100), nullable=False),
        sa.Column("optimal_stake_part", sa.Float(), nullable=True),
        sa.Column("value_percent", sa.Float(), nullable=True),
        sa.Column("money_line1", sa.Float(), nullable=True),
        sa.Column("money_line2", sa.Float(), nullable=True),
        sa.Column("bet_on", sa.String(length=200), nullable=True),
        sa.Column("source_file", sa.String(length=255), nullable=False),
        sa.Column("file_id", sa.String(length=255), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "collection", "standard_date", "team1_key", "team2_key",
            name="uq_prediction_collection_date_teams",
        ),
    )
    op.create_index(
        "idx_predictions_collection_match_date",
        "predictions",
        ["collection", "match_date"],
        unique=False,
    )
    op.create_index(
        "idx_predictions_collection_standard_date",
        "predictions",
        ["collection", "standard_date"],
        unique=False,
    )

    op.create_table(
        "processed_files",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("file_id", sa.String(length=255), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("collection", sa.String(length=50), nullable=False),
        sa.Column("sport_type", sa.String(length=20), nullable=False),
        sa.Column("bet_type", sa.String(length=20), nullable=False),
        sa.Column("file_date", sa.String(length=30), nullable=True),
        sa.Column("prediction_count", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_id"),
    )

    op.create_table(
        "cached_result_sets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sport_type", sa.String(length=20), nullable=False),
        sa.Column("api_date", sa.String(length=10), nullable=False),
        sa.Column("matches", sa.JSON(), nullable=False),
        sa.Column("fetched_at", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sport_type", "api_date", name="uq_cached_result_set_key"),
    )
    op.create_index(
        "ix_cached_result_sets_fetched_at",
        "cached_result_sets",
        ["fetched_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_cached_result_sets_fetched_at", table_name="cached_result_sets")
    op.drop_table("cached_result_sets")
    op.drop_table("processed_files")
    op.drop_index("idx_predictions_collection_standard_date", table_name="predictions")
    op.drop_index("idx_predictions_collection_match_date", table_name="predictions")
    op.drop_table("predictions")
