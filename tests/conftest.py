"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from betcheck.db.models import Base
from betcheck.feed.base import AuthoritativeMatch
from betcheck.services.prediction_ingestion import Prediction


def _memory_engine():
    # One shared connection so every thread (FastAPI's threadpool included)
    # sees the same in-memory database
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests.
    """
    return _memory_engine()


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory():
    """
    A sessionmaker over a fresh in-memory database.

    For code that opens and commits its own sessions.
    """
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feed_matches():
    """A day of feed results."""
    return [
        AuthoritativeMatch(
            home_team_name="Novak Djokovic",
            away_team_name="Rafael Nadal",
            home_score=2, away_score=1,
            home_set1=6, away_set1=4,
            home_set2=3, away_set2=6,
            status="finished",
            match_id="1001",
        ),
        AuthoritativeMatch(
            home_team_name="Carlos Alcaraz",
            away_team_name="Jannik Sinner",
            home_score=0, away_score=2,
            home_set1=4, away_set1=6,
            home_set2=5, away_set2=7,
            status="finished",
            match_id="1002",
        ),
        AuthoritativeMatch(
            home_team_name="Daniil Medvedev",
            away_team_name="Alexander Zverev",
            status="not_started",
            match_id="1003",
        ),
    ]


@pytest.fixture
def make_prediction():
    """Factory for predictions with sensible defaults."""
    def _make(team1: str, team2: str, **kwargs) -> Prediction:
        kwargs.setdefault("standard_date", "10th Apr 2025")
        kwargs.setdefault("date", "10th Apr 2025")
        return Prediction(team1=team1, team2=team2, **kwargs)
    return _make
