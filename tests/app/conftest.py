import pytest
from fastapi.testclient import TestClient

from eventsync.app.app import app

TEST_CRON_SECRET = "test-cron-secret"


@pytest.fixture
def client(monkeypatch) -> TestClient:
    """Client without the scheduler secret (for testing auth requirements)."""
    monkeypatch.setenv("CRON_SECRET", TEST_CRON_SECRET)
    return TestClient(app)


@pytest.fixture
def cron_client(client: TestClient) -> TestClient:
    """Client that sends the scheduler secret on every request."""
    client.headers.update({"X-Cron-Secret": TEST_CRON_SECRET})
    return client
