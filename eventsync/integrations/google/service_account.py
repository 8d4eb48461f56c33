"""Service-account access tokens for organization-wide (shared) calendars.

Uses domain-wide delegation: the service account acts as the configured
impersonated user, so events land on calendars that user can write to.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from eventsync.config.calendar import CalendarSyncSettings
from eventsync.errors import ConfigurationError, CredentialRefreshError
from .auth import GOOGLE_CALENDAR_SCOPES

# Cached tokens are reused while they stay valid for longer than this.
TOKEN_REUSE_MARGIN = timedelta(minutes=5)

logger = logging.getLogger(__name__)


@dataclass
class _CachedToken:
    token: str
    expires_at: datetime


# Keyed by (impersonated user, service account email).
_token_cache: dict[tuple[str | None, str | None], _CachedToken] = {}


def _load_key(settings: CalendarSyncSettings) -> dict:
    if not settings.service_account_configured:
        raise ConfigurationError("Google Calendar integration is not configured")
    try:
        info = json.loads(settings.service_account_info or "")
    except ValueError as e:
        raise ConfigurationError(f"Invalid GOOGLE_SERVICE_ACCOUNT_JSON: {e}") from e
    if not isinstance(info, dict):
        raise ConfigurationError("Invalid GOOGLE_SERVICE_ACCOUNT_JSON: expected a JSON object")
    return info


def _build_credentials(
    info: dict, settings: CalendarSyncSettings
) -> service_account.Credentials:
    return service_account.Credentials.from_service_account_info(
        info,
        scopes=GOOGLE_CALENDAR_SCOPES,
        subject=settings.impersonated_user,
    )


async def get_service_account_token(settings: CalendarSyncSettings) -> str:
    """Get an access token for the impersonated calendar user.

    Raises:
        ConfigurationError: If the service account is not configured
        CredentialRefreshError: If Google refuses to issue a token
    """
    info = _load_key(settings)
    cache_key = (settings.impersonated_user, info.get("client_email"))

    now = datetime.now(timezone.utc)
    cached = _token_cache.get(cache_key)
    if cached and cached.expires_at - now > TOKEN_REUSE_MARGIN:
        return cached.token

    credentials = _build_credentials(info, settings)
    try:
        # google-auth refreshes over a blocking transport.
        await asyncio.to_thread(credentials.refresh, Request())
    except google.auth.exceptions.GoogleAuthError as e:
        raise CredentialRefreshError(f"Service account token exchange failed: {e}") from e

    expiry = credentials.expiry
    if expiry is None:
        expires_at = now + timedelta(hours=1)
    else:
        # google-auth reports expiry as naive UTC.
        expires_at = expiry.replace(tzinfo=timezone.utc)

    _token_cache[cache_key] = _CachedToken(token=credentials.token, expires_at=expires_at)
    logger.info(
        f"Issued service account calendar token: subject={settings.impersonated_user}, "
        f"expires_at={expires_at.isoformat()}"
    )
    return credentials.token


def reset_token_cache() -> None:
    _token_cache.clear()
