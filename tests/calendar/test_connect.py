"""Tests for connecting a member's calendar through OAuth."""

from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from eventsync.calendar.connect import (
    ConnectionOutcome,
    complete_calendar_connection,
    start_calendar_connection,
)
from eventsync.config.calendar import CalendarSyncSettings
from eventsync.errors import ConfigurationError, InvalidOAuthStateError, TokenExchangeError
from eventsync.integrations.google.auth import GoogleToken
from tests._factories import make_id_token

_MOD = "eventsync.calendar.connect"


@pytest.mark.asyncio
async def test_returns_consent_url_with_state_token(settings):
    with patch(
        f"{_MOD}.begin_connection",
        new=AsyncMock(return_value=("conn-1", "state-abc")),
    ) as mock_begin:
        url = await start_calendar_connection("member-1", "org-1", "user-1", settings)

    mock_begin.assert_awaited_once_with("member-1", "org-1", "user-1")
    query = parse_qs(urlparse(url).query)
    assert query["state"] == ["state-abc"]
    assert query["client_id"] == ["test_client_id"]
    assert query["redirect_uri"] == [
        "https://example.com/api/integrations/google-calendar/callback"
    ]


@pytest.mark.asyncio
async def test_requires_oauth_client():
    settings = CalendarSyncSettings()
    with patch(f"{_MOD}.begin_connection", new=AsyncMock()) as mock_begin:
        with pytest.raises(ConfigurationError):
            await start_calendar_connection("member-1", "org-1", "user-1", settings)

    mock_begin.assert_not_called()


def test_outcome_redirect_url(settings):
    url = ConnectionOutcome("error", "access denied").redirect_url(settings)

    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
        "https://example.com/account/integrations/calendars"
    )
    assert parse_qs(parsed.query) == {"status": ["error"], "message": ["access denied"]}


@pytest.fixture
def pending_connection(connection_factory):
    return connection_factory.make(
        {
            "status": "pending",
            "state_token": "state-abc",
            "metadata": {"lastConnectionStartedBy": "user-1"},
        }
    )


@pytest.fixture
def stores(pending_connection):
    """Patch the connection stores and the code exchange."""
    with (
        patch(
            f"{_MOD}.get_connection_by_state",
            new=AsyncMock(return_value=pending_connection),
        ) as get_by_state,
        patch(f"{_MOD}.complete_connection", new=AsyncMock(return_value=True)) as complete,
        patch(f"{_MOD}.fail_connection", new=AsyncMock()) as fail,
        patch(f"{_MOD}.exchange_code_for_token", new=AsyncMock()) as exchange,
    ):
        yield MagicMock(
            get_by_state=get_by_state, complete=complete, fail=fail, exchange=exchange
        )


class TestCompleteCalendarConnection:
    @pytest.mark.asyncio
    async def test_stores_tokens_and_account(self, settings, stores, pending_connection):
        stores.exchange.return_value = GoogleToken(
            access_token="new-access",
            expires_in=3600,
            id_token=make_id_token({"email": "member1@example.com", "sub": "1234"}),
        )

        outcome = await complete_calendar_connection(
            "state-abc", "auth-code", settings=settings
        )

        assert outcome == ConnectionOutcome("success", "Google Calendar connected")
        stores.get_by_state.assert_awaited_once_with("state-abc")
        stores.exchange.assert_awaited_once_with("auth-code", settings)
        args, kwargs = stores.complete.call_args
        connection, credentials = args
        assert connection is pending_connection
        assert credentials.access_token == "new-access"
        assert credentials.refresh_token is None
        assert credentials.token_expires_at is not None
        assert kwargs == {
            "external_account_id": "member1@example.com",
            "account_email": "member1@example.com",
            "connected_by": "user-1",
        }
        stores.fail.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_subject_without_email(self, settings, stores):
        stores.exchange.return_value = GoogleToken(
            access_token="new-access", id_token=make_id_token({"sub": "1234"})
        )

        await complete_calendar_connection("state-abc", "auth-code", settings=settings)

        kwargs = stores.complete.call_args.kwargs
        assert kwargs["external_account_id"] == "1234"
        assert kwargs["account_email"] is None

    @pytest.mark.asyncio
    async def test_consent_error_fails_connection(self, settings, stores):
        outcome = await complete_calendar_connection(
            "state-abc", error="access_denied", settings=settings
        )

        assert outcome == ConnectionOutcome("error", "access_denied")
        stores.fail.assert_awaited_once_with("conn-1", "access_denied")
        stores.exchange.assert_not_called()
        stores.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_code_fails_connection(self, settings, stores):
        outcome = await complete_calendar_connection("state-abc", settings=settings)

        assert outcome == ConnectionOutcome("error", "Missing authorization code")
        stores.fail.assert_awaited_once_with("conn-1", "Missing authorization code")

    @pytest.mark.asyncio
    async def test_rejected_exchange_fails_connection(self, settings, stores):
        stores.exchange.side_effect = TokenExchangeError("Bad Request")

        outcome = await complete_calendar_connection(
            "state-abc", "used-code", settings=settings
        )

        assert outcome == ConnectionOutcome("error", "Bad Request")
        stores.fail.assert_awaited_once_with("conn-1", "Bad Request")
        stores.complete.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [None, "", "stale"])
    async def test_unknown_state_changes_nothing(self, settings, stores, state):
        stores.get_by_state.return_value = None

        with pytest.raises(InvalidOAuthStateError, match="expired"):
            await complete_calendar_connection(state, "auth-code", settings=settings)

        stores.fail.assert_not_called()
        stores.exchange.assert_not_called()

    @pytest.mark.asyncio
    async def test_state_replaced_during_exchange(self, settings, stores):
        stores.exchange.return_value = GoogleToken(access_token="new-access")
        stores.complete.return_value = False

        with pytest.raises(InvalidOAuthStateError):
            await complete_calendar_connection("state-abc", "auth-code", settings=settings)

    @pytest.mark.asyncio
    async def test_requires_oauth_client(self, stores):
        with pytest.raises(ConfigurationError):
            await complete_calendar_connection(
                "state-abc", "auth-code", settings=CalendarSyncSettings()
            )

        stores.get_by_state.assert_not_called()
