"""
BetCheck - prediction reconciliation for tennis and table tennis

Ingests spreadsheets of match predictions, stores them, and checks them
against official results pulled from a third-party sports feed.

Main components:
- players: Name normalization and tiered player matching
- parsers: Score and date parsing
- feed: Results feed client and the time-based results cache
- services: Prediction ingestion, storage queries and reconciliation
- db: SQLAlchemy models and session management
- web: FastAPI JSON API
"""

__version__ = "1.0.0"
