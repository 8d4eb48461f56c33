"""Google OAuth authentication functions."""

from urllib.parse import urlencode
from datetime import datetime, timedelta, timezone
import logging

import google.auth.jwt
import httpx
from pydantic import BaseModel

from eventsync.config.calendar import CalendarSyncSettings
from eventsync.errors import ConfigurationError, CredentialRefreshError, TokenExchangeError
from eventsync.models.calendar import StoredCredentials

TOKEN_URL = "https://oauth2.googleapis.com/token"
AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"

GOOGLE_CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
GOOGLE_OAUTH_SCOPES = [*GOOGLE_CALENDAR_SCOPES, "openid", "email"]

logger = logging.getLogger(__name__)


class GoogleToken(BaseModel):
    """An OAuth token for the Google API."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    id_token: str | None = None

    def expires_at_datetime(self) -> datetime | None:
        """Convert expires_in to a datetime."""
        if self.expires_in is None:
            return None
        return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)

    def to_stored_credentials(self) -> StoredCredentials:
        return StoredCredentials(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_expires_at=self.expires_at_datetime(),
            scope=self.scope,
        )


async def refresh_access_token(
    refresh_token: str, settings: CalendarSyncSettings
) -> GoogleToken:
    """Refresh a Google access token using a refresh token.

    Args:
        refresh_token: The refresh token to use for obtaining a new access token
        settings: Calendar settings holding the OAuth client credentials

    Returns:
        GoogleToken: The new token. `refresh_token` is only set when Google rotated it.

    Raises:
        ConfigurationError: If the OAuth client is not configured
        CredentialRefreshError: If the refresh request fails. The message
            contains `invalid_grant` when the refresh token was revoked or expired.
    """
    if not settings.oauth_configured:
        raise ConfigurationError(
            "Google OAuth not configured. Missing GOOGLE_OAUTH_CLIENT_ID or GOOGLE_OAUTH_CLIENT_SECRET"
        )

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(
                TOKEN_URL,
                data={
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        raise CredentialRefreshError(f"Failed to reach Google token endpoint: {e}") from e

    if response.status_code == 200:
        return GoogleToken.model_validate(response.json())

    error_data: dict = {}
    try:
        error_data = response.json()
    except ValueError:
        logger.warning(
            f"Failed to parse token refresh error response as JSON: "
            f"raw_response={response.text[:500]}"
        )

    error_code = error_data.get("error") if isinstance(error_data, dict) else None
    if error_code == "invalid_grant":
        logger.error(
            f"Refresh token has been expired or revoked. Re-authorization required. "
            f"status_code={response.status_code}, "
            f"error_description={error_data.get('error_description', 'N/A')}"
        )
        raise CredentialRefreshError(
            "invalid_grant: refresh token expired or revoked. Re-authorization required."
        )

    logger.error(
        f"Failed to refresh token: status_code={response.status_code}, "
        f"error_data={error_data}, response_text={response.text[:500]}"
    )
    raise CredentialRefreshError(
        f"Failed to refresh Google token (status {response.status_code})"
    )


def build_oauth_authorize_url(
    settings: CalendarSyncSettings, state: str | None = None
) -> str:
    """Build the Google OAuth authorization URL for connecting a calendar.

    Raises:
        ConfigurationError: If the OAuth client ID is not configured
    """
    if not settings.google_client_id:
        raise ConfigurationError("GOOGLE_OAUTH_CLIENT_ID environment variable is not set")

    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.oauth_redirect_uri,
        "scope": " ".join(GOOGLE_OAUTH_SCOPES),
        "response_type": "code",
        "access_type": "offline",  # Required to get refresh token
        "prompt": "consent",  # Force consent screen to ensure refresh token
        "include_granted_scopes": "true",
    }
    if state is not None:
        params["state"] = state

    return f"{AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code_for_token(code: str, settings: CalendarSyncSettings) -> GoogleToken:
    """Exchange a Google authorization code for an access token.

    Args:
        code: The authorization code from the OAuth callback
        settings: Calendar settings holding the OAuth client credentials

    Returns:
        GoogleToken: A new token containing access_token, refresh_token and id_token

    Raises:
        ConfigurationError: If the OAuth client is not configured
        TokenExchangeError: If the exchange request fails
    """
    if not settings.oauth_configured:
        raise ConfigurationError(
            "Google OAuth not configured. Missing GOOGLE_OAUTH_CLIENT_ID or GOOGLE_OAUTH_CLIENT_SECRET"
        )

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(
                TOKEN_URL,
                data={
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": settings.oauth_redirect_uri,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        raise TokenExchangeError(f"Failed to reach Google token endpoint: {e}") from e

    if response.status_code != 200:
        logger.error(
            f"Failed to exchange Google code: status_code={response.status_code}, "
            f"response_text={response.text[:500]}"
        )
        description = None
        try:
            error_data = response.json()
        except ValueError:
            error_data = None
        if isinstance(error_data, dict):
            description = error_data.get("error_description") or error_data.get("error")
        raise TokenExchangeError(
            description
            or f"Failed to exchange Google code (status {response.status_code})"
        )

    return GoogleToken.model_validate(response.json())


def id_token_identity(id_token: str | None) -> tuple[str | None, str | None]:
    """Read the (email, subject) claims of an ID token.

    The signature is not checked. Returns (None, None) when the token
    cannot be read.
    """
    if not id_token:
        return None, None
    try:
        claims = google.auth.jwt.decode(id_token, verify=False)
    except ValueError as e:
        logger.warning(f"Failed to parse Google ID token: {e}")
        return None, None
    return claims.get("email"), claims.get("sub")
