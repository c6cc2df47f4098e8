"""Root conftest for all tests.

Makes shared fixtures available across all test modules: canned workout
data, a fake workout repository, a workout logger context and an in-memory
SQLite session factory.
"""

import os

os.environ.setdefault("OPENAI_API_KEY", "test-key")  # pragma: allowlist secret
os.environ.setdefault("DATABASE_URL", "sqlite://")

import copy
from contextlib import contextmanager
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tests.fakes import POWERLIFTING_WORKOUT, REFLECTION_WORKOUT, RUNNING_WORKOUT, FakeRepository
from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.db.models import Base


@pytest.fixture
def powerlifting_workout() -> dict[str, Any]:
    return copy.deepcopy(POWERLIFTING_WORKOUT)


@pytest.fixture
def running_workout() -> dict[str, Any]:
    return copy.deepcopy(RUNNING_WORKOUT)


@pytest.fixture
def reflection_workout() -> dict[str, Any]:
    return copy.deepcopy(REFLECTION_WORKOUT)


@pytest.fixture
def fake_repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def logger_context(fake_repository: FakeRepository) -> WorkoutLoggerContext:
    return WorkoutLoggerContext(
        user_id="user123",
        coach_id="coach456",
        conversation_id="conv789",
        user_timezone="America/Los_Angeles",
        repository=fake_repository,
    )


@pytest.fixture
def session_factory():
    """Session context manager over a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @contextmanager
    def _session():
        session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield _session
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
