import os

# Allowed environment for env_loader, which validates on import.
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/eventsync_test")
os.environ.setdefault("PUBLIC_SITE_BASE_URL", "https://example.com")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest  # noqa: E402

from eventsync.app import env_loader  # noqa: F401, E402
from eventsync.config.calendar import CalendarSyncSettings  # noqa: E402
from eventsync.integrations.google.service_account import reset_token_cache  # noqa: E402

from tests._factories import (  # noqa: E402
    AutomationJobFactory,
    CalendarConnectionFactory,
    EventFactory,
    LinkedGoogleAccountFactory,
    SyncRecordFactory,
)


class AccidentalDatabaseAccessError(Exception):
    """Raised when a unit test accidentally tries to access the database."""

    pass


def _raise_db_access_error(*args, **kwargs):
    """Raise an error when DB access is attempted in unit tests."""
    raise AccidentalDatabaseAccessError(
        "Unit test attempted to connect to the database! "
        "Either mock the database call with @patch('eventsync.db.<module>.get_db_cursor') "
        "or similar, or mark this test as @pytest.mark.e2e if it requires real DB access."
    )


@pytest.fixture(autouse=True)
def prevent_db_access_in_unit_tests(request, monkeypatch):
    """Prevent accidental database access in unit tests.

    For e2e and integration tests this does nothing. For all other tests,
    psycopg.AsyncConnection.connect is patched to raise a clear error if any
    code path reaches the database without proper mocking.
    """
    markers = [marker.name for marker in request.node.iter_markers()]
    if "e2e" in markers or "integration" in markers:
        yield
        return

    monkeypatch.setattr("psycopg.AsyncConnection.connect", _raise_db_access_error)
    yield


@pytest.fixture(autouse=True)
def clear_service_account_token_cache():
    reset_token_cache()
    yield
    reset_token_cache()


@pytest.fixture
def settings() -> CalendarSyncSettings:
    """Settings with both the OAuth client and the service account configured."""
    return CalendarSyncSettings(
        public_site_base_url="https://example.com",
        google_client_id="test_client_id",
        google_client_secret="test_client_secret",
        service_account_info='{"type": "service_account"}',
        impersonated_user="calendar@example.com",
    )


@pytest.fixture(scope="session")
def event_factory() -> EventFactory:
    return EventFactory()


@pytest.fixture(scope="session")
def connection_factory() -> CalendarConnectionFactory:
    return CalendarConnectionFactory()


@pytest.fixture(scope="session")
def linked_account_factory() -> LinkedGoogleAccountFactory:
    return LinkedGoogleAccountFactory()


@pytest.fixture(scope="session")
def sync_record_factory() -> SyncRecordFactory:
    return SyncRecordFactory()


@pytest.fixture(scope="session")
def job_factory() -> AutomationJobFactory:
    return AutomationJobFactory()
