"""Pick the calendar an event should be synced to.

The first match wins: a member's connected OAuth calendar, then the
organization's shared calendar, then (when a user is given) that user's
personal calendar.
"""

import logging

from eventsync.config.calendar import CalendarSyncSettings
from eventsync.db.calendar_connections import mark_connection_status, resolve_connection
from eventsync.db.providers import get_organization_calendar_config
from eventsync.errors import (
    CalendarSyncError,
    ConfigurationError,
    SyncUnavailableError,
)
from eventsync.integrations.google.calendar_client import (
    get_personal_calendar_client_for_user,
)
from .targets import CalendarTarget, OAuthTarget, PersonalTarget, SharedTarget

logger = logging.getLogger(__name__)


async def _reject_connection(connection_id: str, reason: str) -> None:
    await mark_connection_status(connection_id, "error", reason)
    raise ConfigurationError(reason)


async def resolve_calendar_target(
    organization_id: str,
    member_id: str | None = None,
    user_id: str | None = None,
    *,
    settings: CalendarSyncSettings,
) -> CalendarTarget:
    """Resolve the calendar target for an organization, member, or user.

    Raises:
        ConfigurationError: If neither OAuth nor the service account is
            configured, or the matching target cannot be used as configured.
            A connected calendar that is missing its calendar ID or access token
            is also marked as errored.
        SyncUnavailableError: If no target exists at all
    """
    if not settings.is_calendar_integration_configured:
        raise ConfigurationError("Google Calendar integration is not configured")

    connection = await resolve_connection(organization_id, member_id)
    if connection is not None:
        if not settings.oauth_configured:
            raise ConfigurationError(
                "Google OAuth not configured. Missing GOOGLE_OAUTH_CLIENT_ID or GOOGLE_OAUTH_CLIENT_SECRET"
            )
        if not connection.calendar_id:
            await _reject_connection(connection.id, "Calendar connection is missing a calendar ID")
        if not connection.access_token:
            await _reject_connection(connection.id, "Calendar connection is missing an access token")
        logger.debug(
            f"Resolved OAuth calendar target: connection_id={connection.id}, "
            f"member_id={connection.member_id}"
        )
        return OAuthTarget(connection=connection, credentials=connection.stored_credentials())

    config = await get_organization_calendar_config(organization_id)
    if config is not None:
        if not settings.service_account_configured:
            raise ConfigurationError("Google Calendar integration is not configured")
        logger.debug(
            f"Resolved shared calendar target: organization_id={organization_id}, "
            f"calendar_id={config.calendar_id}"
        )
        return SharedTarget(calendar_id=config.calendar_id)

    if user_id is not None:
        if member_id is None:
            raise SyncUnavailableError(
                "user", "A member is required to sync to a personal calendar"
            )
        try:
            client = await get_personal_calendar_client_for_user(user_id, settings)
        except CalendarSyncError as e:
            logger.info(f"Personal calendar unavailable: user_id={user_id}, reason={e}")
            raise SyncUnavailableError("user") from e
        return PersonalTarget(
            member_id=member_id,
            user_id=user_id,
            client=client,
            calendar_id=settings.personal_calendar_id,
        )

    raise SyncUnavailableError("organization")
