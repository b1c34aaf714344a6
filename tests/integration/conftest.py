"""
Integration test fixtures. Builds the FastAPI app with an in-memory (or tmp file) DB.
"""
import pytest
from fastapi.testclient import TestClient

from classgroups.api import create_app
from classgroups.config import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "group_capacities": [7, 7, 6, 6, 6, 6, 6],
        "reset_token": "teacher",
        "legacy_state_file": None,
        "sse_heartbeat_seconds": 0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def api_client(settings):
    """FastAPI TestClient; the lifespan loads the roster on enter."""
    app = create_app(settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def small_client():
    """Client for a single group of two seats."""
    app = create_app(make_settings(group_capacities=[2]))
    with TestClient(app) as client:
        yield client
