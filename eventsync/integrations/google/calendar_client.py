"""Google Calendar API client for syncing platform events."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from eventsync.config.calendar import CalendarSyncSettings
from eventsync.db.accounts import get_linked_google_account, save_linked_account_tokens
from eventsync.errors import (
    CredentialRefreshError,
    PersonalCalendarUnavailableError,
    RemoteAPIError,
)
from eventsync.models.calendar import StoredCredentials
from eventsync.models.event import Event
from eventsync.utils.timezone import ensure_utc, get_event_timezone
from .auth import refresh_access_token
from .service_account import get_service_account_token

BASE_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_MEETING_LENGTH = timedelta(hours=1)
REQUEST_TIMEOUT_SECONDS = 10

logger = logging.getLogger(__name__)


class CalendarEventInput(BaseModel):
    """The parts of an event that are sent to the remote calendar."""

    id: str
    title: str
    start_at: datetime
    end_at: datetime | None = None
    is_all_day: bool = False
    description: str | None = None
    location: str | None = None
    url: str | None = Field(default=None, description="Absolute link back to the event page")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: Event, url: str) -> "CalendarEventInput":
        return cls(
            id=event.id,
            title=event.title,
            start_at=event.start_at,
            end_at=event.end_at,
            is_all_day=event.is_all_day,
            description=event.description,
            location=event.location,
            url=url,
            metadata=event.metadata,
        )


def _resolve_end(start: datetime, end: datetime | None) -> datetime:
    if end is None or end <= start:
        return start + DEFAULT_MEETING_LENGTH
    return end


def build_event_resource(event: CalendarEventInput) -> Dict[str, Any]:
    """Build the Google Calendar event body for an event."""
    resource: Dict[str, Any] = {
        "summary": event.title,
        "status": "confirmed",
        "transparency": "opaque",
        "reminders": {"useDefault": True},
    }
    if event.description:
        resource["description"] = event.description
    if event.location:
        resource["location"] = event.location
    if event.url and event.url.strip():
        resource["source"] = {"title": event.title, "url": event.url}

    start_utc = ensure_utc(event.start_at)
    if event.is_all_day:
        # All-day end dates are exclusive.
        end_utc = ensure_utc(event.end_at) if event.end_at else start_utc + timedelta(days=1)
        resource["start"] = {"date": start_utc.date().isoformat()}
        resource["end"] = {"date": end_utc.date().isoformat()}
    else:
        end_utc = _resolve_end(start_utc, ensure_utc(event.end_at) if event.end_at else None)
        start: Dict[str, str] = {"dateTime": start_utc.isoformat()}
        end: Dict[str, str] = {"dateTime": end_utc.isoformat()}
        tz = get_event_timezone(event.metadata)
        if tz:
            start["timeZone"] = tz
            end["timeZone"] = tz
        resource["start"] = start
        resource["end"] = end

    return resource


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        description = data.get("error_description")
        return f"{error}: {description}" if description else str(error)
    return response.text[:500]


class GoogleCalendarClient:
    """Client for interacting with the Google Calendar API with a bearer token."""

    def __init__(self, access_token: str):
        self.access_token = access_token
        self.base_url = BASE_URL

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _events_url(self, calendar_id: str, event_id: str | None = None) -> str:
        url = f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"
        if event_id is not None:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    async def _make_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Make an API request, converting transport failures into RemoteAPIError."""
        kwargs.setdefault("headers", {}).update(self._get_headers())
        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                f"Request to Google Calendar failed: method={method}, url={url}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            raise RemoteAPIError(f"Google Calendar request failed: {e}") from e

    def _raise_for_status(
        self, response: httpx.Response, action: str, calendar_id: str
    ) -> None:
        if 200 <= response.status_code < 300:
            return
        detail = _error_detail(response)
        logger.error(
            f"Failed to {action} calendar event: calendar_id={calendar_id}, "
            f"status_code={response.status_code}, error={detail}"
        )
        raise RemoteAPIError(
            f"Failed to {action} Google Calendar event (status {response.status_code}): {detail}",
            status_code=response.status_code,
        )

    async def insert_event(self, calendar_id: str, body: Dict[str, Any]) -> str:
        """Create an event and return its Google Calendar ID."""
        response = await self._make_request("POST", self._events_url(calendar_id), json=body)
        self._raise_for_status(response, "create", calendar_id)
        event_id = response.json().get("id")
        if not event_id:
            raise RemoteAPIError("Google Calendar did not return an event ID")
        logger.info(
            f"Successfully created calendar event: event_id={event_id}, calendar_id={calendar_id}"
        )
        return event_id

    async def patch_event(
        self, calendar_id: str, event_id: str, body: Dict[str, Any]
    ) -> str:
        """Update an existing event and return its (possibly unchanged) ID."""
        response = await self._make_request(
            "PATCH", self._events_url(calendar_id, event_id), json=body
        )
        self._raise_for_status(response, "update", calendar_id)
        return response.json().get("id") or event_id

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event. An event that is already gone counts as deleted."""
        response = await self._make_request(
            "DELETE", self._events_url(calendar_id, event_id)
        )
        if response.status_code in (404, 410):
            logger.info(
                f"Calendar event already absent: event_id={event_id}, calendar_id={calendar_id}"
            )
            return
        self._raise_for_status(response, "delete", calendar_id)
        logger.info(
            f"Successfully deleted calendar event: event_id={event_id}, calendar_id={calendar_id}"
        )


async def get_shared_calendar_client(
    settings: CalendarSyncSettings,
) -> GoogleCalendarClient:
    """Get a client that acts through the organization-wide service account."""
    token = await get_service_account_token(settings)
    return GoogleCalendarClient(access_token=token)


async def upsert_remote_event(
    calendar_id: str,
    event: CalendarEventInput,
    settings: CalendarSyncSettings,
    existing_remote_id: Optional[str] = None,
    client: Optional[GoogleCalendarClient] = None,
) -> str:
    """Create the event on the calendar, or update it if it already has a remote ID.

    Uses the shared service-account client when no client is given.

    Returns:
        The remote event ID
    """
    calendar_client = client or await get_shared_calendar_client(settings)
    body = build_event_resource(event)
    if existing_remote_id:
        return await calendar_client.patch_event(calendar_id, existing_remote_id, body)
    return await calendar_client.insert_event(calendar_id, body)


async def delete_remote_event(
    calendar_id: str,
    remote_event_id: str,
    settings: CalendarSyncSettings,
    client: Optional[GoogleCalendarClient] = None,
) -> None:
    """Remove an event from the calendar."""
    calendar_client = client or await get_shared_calendar_client(settings)
    await calendar_client.delete_event(calendar_id, remote_event_id)


async def get_refreshed_client(
    stored_credentials: StoredCredentials, settings: CalendarSyncSettings
) -> tuple[GoogleCalendarClient, Optional[StoredCredentials]]:
    """Get a client for stored OAuth credentials, refreshing the token when needed.

    Returns:
        The client, and the rotated credentials if a refresh happened (None otherwise).
        The caller is responsible for persisting rotated credentials.

    Raises:
        CredentialRefreshError: If the token needed a refresh and it failed
    """
    if not stored_credentials.needs_refresh():
        return GoogleCalendarClient(access_token=stored_credentials.access_token or ""), None

    if not stored_credentials.refresh_token:
        if stored_credentials.access_token:
            # Nothing to refresh with; let the API decide whether the token still works.
            return GoogleCalendarClient(access_token=stored_credentials.access_token), None
        raise CredentialRefreshError("No access token or refresh token available")

    logger.info("Access token expired or about to expire, refreshing proactively...")
    token = await refresh_access_token(stored_credentials.refresh_token, settings)
    refreshed = token.to_stored_credentials()
    return GoogleCalendarClient(access_token=token.access_token), refreshed


async def get_personal_calendar_client_for_user(
    user_id: str, settings: CalendarSyncSettings
) -> GoogleCalendarClient:
    """Get a client for the user's own calendar through their linked Google account.

    Rotated tokens are written back to the linked account.

    Raises:
        PersonalCalendarUnavailableError: If the user has no usable linked account
    """
    account = await get_linked_google_account(user_id)
    if account is None:
        raise PersonalCalendarUnavailableError("No linked Google account")

    try:
        client, refreshed = await get_refreshed_client(account.stored_credentials(), settings)
    except CredentialRefreshError as e:
        raise PersonalCalendarUnavailableError(
            f"Linked Google account could not be refreshed: {e}"
        ) from e

    if refreshed is not None:
        await save_linked_account_tokens(user_id, refreshed)
    return client
