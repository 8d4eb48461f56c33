"""Connect a member's Google Calendar through the OAuth consent flow.

`start_calendar_connection` puts the connection in the pending state under a
fresh state token. Google sends the member back to the callback route with
that token, and `complete_calendar_connection` either stores the issued
tokens or records why the round-trip failed.
"""

import logging
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlencode

from eventsync.config.calendar import CalendarSyncSettings, load_calendar_settings
from eventsync.db.calendar_connections import (
    begin_connection,
    complete_connection,
    fail_connection,
    get_connection_by_state,
)
from eventsync.errors import ConfigurationError, InvalidOAuthStateError, TokenExchangeError
from eventsync.integrations.google.auth import (
    build_oauth_authorize_url,
    exchange_code_for_token,
    id_token_identity,
)

CONNECTION_RESULT_PATH = "/account/integrations/calendars"
CONNECTED_MESSAGE = "Google Calendar connected"
MISSING_CODE_MESSAGE = "Missing authorization code"
EXPIRED_STATE_MESSAGE = "OAuth session has expired"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionOutcome:
    status: Literal["success", "error"]
    message: str

    def redirect_url(self, settings: CalendarSyncSettings) -> str:
        """Where to send the member once the round-trip is over."""
        query = urlencode({"status": self.status, "message": self.message})
        return f"{settings.public_site_base_url}{CONNECTION_RESULT_PATH}?{query}"


async def start_calendar_connection(
    member_id: str,
    organization_id: str,
    user_id: str,
    settings: CalendarSyncSettings | None = None,
) -> str:
    """Put a member's calendar connection in the pending state and get the consent URL.

    The returned URL carries the connection's new state token, which the OAuth
    callback uses to find the connection again.

    Raises:
        ConfigurationError: If the OAuth client is not configured
    """
    if settings is None:
        settings = load_calendar_settings()
    if not settings.oauth_configured:
        raise ConfigurationError("Google Calendar integration is not configured")

    connection_id, state_token = await begin_connection(member_id, organization_id, user_id)
    logger.info(
        f"Starting calendar OAuth flow: connection_id={connection_id}, user_id={user_id}"
    )
    return build_oauth_authorize_url(settings, state=state_token)


async def complete_calendar_connection(
    state: str | None,
    code: str | None = None,
    error: str | None = None,
    settings: CalendarSyncSettings | None = None,
) -> ConnectionOutcome:
    """Finish the OAuth round-trip for the pending connection holding `state`.

    A consent error, a missing code or a failed code exchange leaves the
    connection in the error state. Either way the state token is used up.

    Args:
        state: The state token Google echoed back
        code: The authorization code, absent when consent was refused
        error: The error Google reported instead of a code

    Raises:
        ConfigurationError: If the OAuth client is not configured
        InvalidOAuthStateError: If no pending connection holds the state token
    """
    if settings is None:
        settings = load_calendar_settings()
    if not settings.oauth_configured:
        raise ConfigurationError("Google OAuth is not configured")

    connection = await get_connection_by_state(state) if state else None
    if connection is None:
        raise InvalidOAuthStateError(EXPIRED_STATE_MESSAGE)

    if error or not code:
        reason = error or MISSING_CODE_MESSAGE
        await fail_connection(connection.id, reason)
        return ConnectionOutcome("error", reason)

    try:
        token = await exchange_code_for_token(code, settings)
    except TokenExchangeError as e:
        reason = str(e) or "Failed to exchange authorization code"
        await fail_connection(connection.id, reason)
        return ConnectionOutcome("error", reason)

    email, subject = id_token_identity(token.id_token)
    completed = await complete_connection(
        connection,
        token.to_stored_credentials(),
        external_account_id=email or subject,
        account_email=email,
        connected_by=connection.metadata.get("lastConnectionStartedBy"),
    )
    if not completed:
        raise InvalidOAuthStateError(EXPIRED_STATE_MESSAGE)
    return ConnectionOutcome("success", CONNECTED_MESSAGE)
