"""Fixtures for HTTP API tests."""

import pytest
from fastapi.testclient import TestClient

from studyplan.config.settings import Settings
from studyplan.main import create_app


@pytest.fixture
def client(database):
    """TestClient bound to the seeded test database, English messages."""
    app_settings = Settings(DATABASE_URL="sqlite:///:memory:", STUDYPLAN_LOCALE="en", STORE_RETRY_BASE_DELAY=0.0)
    with TestClient(create_app(app_settings, database=database)) as test_client:
        yield test_client


@pytest.fixture
def as_principal():
    def _headers(principal_id: str, role: str) -> dict[str, str]:
        return {"X-Actor-Id": principal_id, "X-Actor-Role": role}

    return _headers
