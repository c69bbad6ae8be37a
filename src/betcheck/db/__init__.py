"""
Database module for BetCheck.

Provides SQLAlchemy ORM models and session management.

Usage:
    from betcheck.db import get_session, PredictionRecord

    with get_session() as session:
        records = session.query(PredictionRecord).all()
"""

from betcheck.db.models import (
    Base,
    CachedResultSetRecord,
    PredictionRecord,
    ProcessedFile,
)
from betcheck.db.session import SessionLocal, get_db, get_engine, get_session, init_db

__all__ = [
    # Base
    "Base",
    # Models
    "PredictionRecord",
    "ProcessedFile",
    "CachedResultSetRecord",
    # Session
    "get_session",
    "get_db",
    "get_engine",
    "init_db",
    "SessionLocal",
]
