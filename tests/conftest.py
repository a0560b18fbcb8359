"""Test fixtures for Pattern Atlas integration tests.

Uses a temp-file SQLite database per test with the same PRAGMAs as the
production engine. Search runs its stages on separate sessions, so fixtures
commit their data instead of relying on a rolled-back outer transaction.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from patternatlas.config import Settings
from patternatlas.db.base import Base
from patternatlas.taxonomy.models import (  # noqa: F401 -- ensure models registered
    AICategory,
    BusinessFunction,
    CompanyType,
    Department,
    Pattern,
    PatternSimilarity,
    PatternTag,
    RawScrapedContent,
    Tag,
)
from patternatlas.taxonomy.seed import seed_taxonomy


BASE_TIME = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from any .env file or PATTERNATLAS_ variables."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'patternatlas_test.db'}",
        store_timeout_seconds=5.0,
    )


@pytest.fixture
def test_engine(test_settings):
    """Create a temp SQLite engine with all tables."""
    engine = create_engine(test_settings.database_url, echo=False)

    @event.listens_for(engine, "connect")
    def set_pragmas(dbapi_conn, conn_rec):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory handed to the search service."""
    return sessionmaker(bind=test_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session used by tests to arrange data."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_pattern(db_session):
    """Factory creating committed patterns with deterministic timestamps.

    Each call is one minute newer than the previous unless created_at is given.
    """
    counter = {"n": 0}

    def _make(**kwargs) -> Pattern:
        counter["n"] += 1
        defaults = dict(
            title=f"Pattern {counter['n']}",
            description="Generic AI use case.",
            content_quality_score=50,
            extraction_confidence=0.5,
            created_at=BASE_TIME + timedelta(minutes=counter["n"]),
        )
        defaults.update(kwargs)
        pattern = Pattern(**defaults)
        db_session.add(pattern)
        db_session.commit()
        return pattern

    return _make


@pytest.fixture
def seeded_taxonomy(db_session):
    """Baseline company types, departments, AI categories, business functions."""
    return seed_taxonomy(db_session)


@pytest.fixture
def fraud_and_chatbot(make_pattern):
    """P1 fraud detection (Data, quality 80) and P2 support chatbot (Engineering, quality 60)."""
    p1 = make_pattern(
        title="Fraud detection with anomaly models",
        description="Flag suspicious card transactions with unsupervised models.",
        department="Data",
        role="Data Scientist",
        ai_category="Anomaly Detection",
        content_quality_score=80,
        extraction_confidence=0.9,
        company_examples=[{"company": "Stripe", "outcome": "fewer chargebacks"}],
    )
    p2 = make_pattern(
        title="Chatbot for support",
        description="Answer common support questions automatically.",
        department="Engineering",
        role="Support Engineer",
        ai_category="NLP",
        content_quality_score=60,
        extraction_confidence=0.8,
    )
    return p1, p2
