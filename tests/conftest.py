"""Root conftest for all tests.

Provides an isolated in-memory SQLite database per test, SQL-backed stores
bound to it, and a small challenge definition independent of the packaged
catalog.
"""

from collections.abc import Generator
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cadence.challenges.catalog import ChallengeDefinition, FocusArea
from cadence.db.models import Base, Profile
from cadence.persistence.sql_store import SqlChallengeStore, SqlProfileStore

TEST_CHALLENGE_SLUG = "test-challenge"


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session context manager with the same commit/rollback behavior as get_session()."""
    session_local = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    @contextmanager
    def _factory() -> Generator[Session, None, None]:
        session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _factory


@pytest.fixture
def store(session_factory) -> SqlChallengeStore:
    return SqlChallengeStore(session_factory=session_factory)


@pytest.fixture
def profile_store(session_factory) -> SqlProfileStore:
    return SqlProfileStore(session_factory=session_factory)


@pytest.fixture
def add_profile(session_factory):
    """Insert a profile row: add_profile("user-1", "Europe/London")."""

    def _add(user_id: str, timezone: str | None) -> None:
        with session_factory() as session:
            session.add(Profile(user_id=user_id, timezone=timezone))

    return _add


@pytest.fixture
def challenge() -> ChallengeDefinition:
    return ChallengeDefinition(
        slug=TEST_CHALLENGE_SLUG,
        title="Test Challenge",
        focus_areas=(
            FocusArea(slug="sleep", title="Sleep", default_week=1, default_habits=("Lights out by 11",)),
            FocusArea(slug="movement", title="Movement", default_week=2),
            FocusArea(slug="nutrition", title="Nutrition", default_week=3),
            FocusArea(slug="stress", title="Stress", default_week=4),
        ),
    )


@pytest.fixture
def challenge_lookup(challenge):
    """Catalog lookup that knows only the test challenge."""
    return lambda slug: challenge if slug == challenge.slug else None
