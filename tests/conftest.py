"""
Shared fixtures and configuration for all tests.
"""
import os

import pytest
from fastapi.testclient import TestClient

# Override environment settings for testing
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from nightowl.db.session import Database
from nightowl.main import create_app
from nightowl.repositories import GamificationRepository
from nightowl.services import EventBus, GamificationEngine

TEST_USER_ID = 42


@pytest.fixture
def database():
    """
    Create a fresh in-memory database for each test.
    """
    database = Database("sqlite:///:memory:")
    database.create_schema()
    try:
        yield database
    finally:
        database.drop_schema()
        database.dispose()


@pytest.fixture
def repository(database):
    return GamificationRepository(database.session_factory)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """Every event published on the bus, in order."""
    from nightowl.core.constants import EventType

    events = []
    for event_type in EventType:
        event_bus.on(event_type, events.append)
    return events


@pytest.fixture
def engine(repository, event_bus):
    return GamificationEngine(repository, event_bus)


@pytest.fixture
def user_id():
    return TEST_USER_ID


@pytest.fixture
def user_with_state(repository, user_id):
    """A user whose gamification state already exists."""
    repository.save_state(user_id)
    return user_id


@pytest.fixture
def client(engine):
    """
    Create a test client against an app wired to the test engine.
    """
    with TestClient(create_app(engine)) as client:
        yield client
