"""
BetCheck services - business logic between spreadsheets, store and feed.

Stages:
1. Prediction ingestion: spreadsheet rows -> Prediction records
2. Prediction store: upsert and paginated reads
3. Reconciliation: predictions + feed results -> verdicts and scores

Usage:
    from betcheck.services import (
        ingest,
        PredictionRepository,
        ReconciliationService,
    )
"""

from betcheck.services.prediction_ingestion import (
    IngestContext,
    IngestResult,
    LocalFileStorage,
    Prediction,
    dedupe_predictions,
    ingest,
    ingest_file,
    read_spreadsheet_rows,
)
from betcheck.services.predictions import (
    PredictionPage,
    PredictionRepository,
    UpsertStats,
    sort_predictions_by_time,
)
from betcheck.services.reconciliation import (
    LatestRequestGate,
    MatchIndex,
    MatchKey,
    ReconciledPrediction,
    ReconciliationService,
    ResolvedScore,
    reconcile_matches,
)

__all__ = [
    # Ingestion
    "IngestContext",
    "IngestResult",
    "LocalFileStorage",
    "Prediction",
    "dedupe_predictions",
    "ingest",
    "ingest_file",
    "read_spreadsheet_rows",
    # Store
    "PredictionPage",
    "PredictionRepository",
    "UpsertStats",
    "sort_predictions_by_time",
    # Reconciliation
    "LatestRequestGate",
    "MatchIndex",
    "MatchKey",
    "ReconciledPrediction",
    "ReconciliationService",
    "ResolvedScore",
    "reconcile_matches",
]
