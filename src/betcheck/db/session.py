"""
Database session management for BetCheck.

Provides SQLAlchemy engine and session factory configured from
config.py. SQLite (the default) gets a plain engine; server databases get
connection pooling.

Usage:
    # As a context manager (recommended for scripts)
    from betcheck.db import get_session

    with get_session() as session:
        records = session.query(PredictionRecord).all()
        # Commits automatically on exit, rolls back on exception

    # As a dependency (for FastAPI)
    from betcheck.db import get_db

    @app.get("/api/dates")
    def list_dates(db: Session = Depends(get_db)):
        ...
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from betcheck.config import settings


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine.

    The engine is configured with:
    - Connection pool for server databases (pool size from settings)
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.log_level == "DEBUG",
        )

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,  # Verify connection is alive before using
        echo=settings.log_level == "DEBUG",
    )


# Create the engine (singleton pattern via module-level variable)
_engine: Optional[Engine] = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - creates new sessions bound to our engine
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=_get_engine(),
)


def init_db(engine: Optional[Engine] = None) -> None:
    """Create any missing tables (development and tests; production uses Alembic)."""
    from betcheck.db.models import Base

    Base.metadata.create_all(bind=engine or _get_engine())


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection function for FastAPI.

    Use this with FastAPI's Depends() for request-scoped sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
