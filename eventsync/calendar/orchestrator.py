"""Reconcile one event with one calendar target.

Every attempt that reaches a target leaves its outcome on the event's sync
record. Failures are recorded and then re-raised for the caller to handle.
The remote call and the local write are not one transaction. If the write
after a successful insert fails, the remote event is orphaned and the next
sync inserts it again.
"""

import logging
from datetime import datetime, timezone

from eventsync.config.calendar import CalendarSyncSettings, load_calendar_settings
from eventsync.db.event_calendar_sync import ensure_sync_record, update_sync_record
from eventsync.db.events import get_event_by_id
from eventsync.errors import CalendarSyncError, RemoteAPIError
from eventsync.integrations.google.calendar_client import (
    CalendarEventInput,
    GoogleCalendarClient,
    delete_remote_event,
    get_refreshed_client,
    upsert_remote_event,
)
from eventsync.models.calendar import StoredCredentials
from eventsync.models.event import Event
from eventsync.models.sync import SyncAction, SyncRecord
from .credentials import (
    record_connection_failure,
    record_connection_success,
    save_rotated_credentials,
)
from .links import build_canonical_event_url
from .resolver import resolve_calendar_target
from .targets import CalendarTarget, OAuthTarget, PersonalTarget

NO_ORGANIZATION_REASON = "Event has no owning organization"
UNKNOWN_ERROR_MESSAGE = "Unknown calendar sync error"

logger = logging.getLogger(__name__)


def error_message(error: BaseException) -> str:
    return str(error) or UNKNOWN_ERROR_MESSAGE


def _as_sync_error(error: Exception) -> CalendarSyncError:
    if isinstance(error, CalendarSyncError):
        return error
    return RemoteAPIError(f"Calendar request failed: {error_message(error)}")


async def _open_client(
    target: CalendarTarget, settings: CalendarSyncSettings
) -> tuple[GoogleCalendarClient | None, StoredCredentials | None]:
    """Get the client for a target. None means the shared service-account client."""
    if isinstance(target, OAuthTarget):
        return await get_refreshed_client(target.credentials, settings)
    if isinstance(target, PersonalTarget):
        return target.client, None
    return None, None


async def _save_rotation(
    target: CalendarTarget, refreshed: StoredCredentials | None
) -> None:
    if isinstance(target, OAuthTarget):
        await save_rotated_credentials(target.connection, refreshed)


async def _record_success(target: CalendarTarget) -> None:
    if isinstance(target, OAuthTarget):
        await record_connection_success(target.connection)


async def _record_failure(
    event_id: str,
    target: CalendarTarget,
    error: CalendarSyncError,
    refreshed: StoredCredentials | None,
) -> None:
    message = error_message(error)
    logger.warning(
        f"Calendar sync failed: event_id={event_id}, target={target.kind}, "
        f"member_id={target.member_id}, exception_type={type(error).__name__}, error={message}"
    )
    await update_sync_record(event_id, target.member_id, status="failed", failure_reason=message)
    if isinstance(target, OAuthTarget):
        await record_connection_failure(target.connection, message, refreshed)


async def _remove_from_target(
    event: Event,
    record: SyncRecord,
    target: CalendarTarget,
    settings: CalendarSyncSettings,
) -> SyncAction:
    remote_event_id = record.google_event_id or ""
    refreshed = None
    try:
        client, refreshed = await _open_client(target, settings)
        await delete_remote_event(target.calendar_id, remote_event_id, settings, client=client)
    except Exception as e:
        error = _as_sync_error(e)
        await _record_failure(event.id, target, error, refreshed)
        if error is e:
            raise
        raise error from e

    await _save_rotation(target, refreshed)
    await update_sync_record(
        event.id,
        target.member_id,
        status="synced",
        last_synced_at=datetime.now(timezone.utc),
        clear_google_event_id=True,
        clear_failure_reason=True,
    )
    await _record_success(target)
    logger.info(
        f"Removed event from calendar: event_id={event.id}, target={target.kind}, "
        f"member_id={target.member_id}, remote_event_id={remote_event_id}"
    )
    return "deleted"


async def _push_to_target(
    event: Event,
    record: SyncRecord,
    target: CalendarTarget,
    settings: CalendarSyncSettings,
) -> SyncAction:
    payload = CalendarEventInput.from_event(event, build_canonical_event_url(event, settings))
    refreshed = None
    try:
        client, refreshed = await _open_client(target, settings)
        remote_event_id = await upsert_remote_event(
            target.calendar_id,
            payload,
            settings,
            existing_remote_id=record.google_event_id,
            client=client,
        )
    except Exception as e:
        error = _as_sync_error(e)
        await _record_failure(event.id, target, error, refreshed)
        if error is e:
            raise
        raise error from e

    await _save_rotation(target, refreshed)
    await update_sync_record(
        event.id,
        target.member_id,
        google_event_id=remote_event_id,
        status="synced",
        last_synced_at=datetime.now(timezone.utc),
        clear_failure_reason=True,
    )
    await _record_success(target)

    action: SyncAction = "updated" if record.google_event_id else "created"
    logger.info(
        f"Synced event to calendar: event_id={event.id}, action={action}, "
        f"target={target.kind}, member_id={target.member_id}, remote_event_id={remote_event_id}"
    )
    return action


async def sync_event_with_calendar(
    event_id: str,
    *,
    member_id: str | None = None,
    user_id: str | None = None,
    settings: CalendarSyncSettings | None = None,
) -> SyncAction:
    """Bring the calendar target for an event in line with the event's visibility.

    Publicly visible events are created or updated on the target; any other
    event that was previously pushed is deleted from it.

    Args:
        event_id: The event to sync
        member_id: Sync to this member's calendar instead of the organization's
        user_id: Fall back to this user's personal calendar when the
            organization has nothing connected
        settings: Calendar settings; read from the environment when omitted

    Returns:
        What happened on the remote calendar

    Raises:
        ConfigurationError, SyncUnavailableError: If no usable target could be
            resolved. No sync record is written in that case.
        CalendarSyncError: If the remote calendar call failed. The sync record
            is marked failed before the error is raised.
    """
    if settings is None:
        settings = load_calendar_settings()

    event = await get_event_by_id(event_id)
    if event is None:
        logger.info(f"Event not found, skipping calendar sync: event_id={event_id}")
        return "skipped"

    if event.organization_id is None:
        if member_id is not None:
            await ensure_sync_record(event.id, member_id)
            await update_sync_record(
                event.id, member_id, status="pending", failure_reason=NO_ORGANIZATION_REASON
            )
        return "skipped"

    target = await resolve_calendar_target(
        event.organization_id, member_id, user_id, settings=settings
    )
    record = await ensure_sync_record(event.id, target.member_id)

    if event.is_publicly_visible:
        return await _push_to_target(event, record, target, settings)

    if not record.google_event_id:
        await update_sync_record(
            event.id, target.member_id, status="pending", clear_failure_reason=True
        )
        return "skipped"

    return await _remove_from_target(event, record, target, settings)
