"""Routes for inspecting and requesting event calendar syncs."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from eventsync.app.auth import require_cron_secret
from eventsync.db.automation_jobs import enqueue_calendar_sync
from eventsync.db.event_calendar_sync import get_failed_syncs, get_sync_records_for_event
from eventsync.db.events import get_event_by_id
from eventsync.models.sync import EventSyncStatusResponse, SyncRecord

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sync", tags=["sync"], dependencies=[Depends(require_cron_secret)]
)


@router.get("/events/{event_id}", response_model=EventSyncStatusResponse)
async def get_event_sync_status(event_id: str) -> EventSyncStatusResponse:
    """Get the calendar sync records kept for an event, one per target."""
    records = await get_sync_records_for_event(event_id)
    return EventSyncStatusResponse(
        event_id=event_id,
        is_synced=bool(records) and all(r.status == "synced" for r in records),
        records=records,
    )


@router.post("/events/{event_id}", status_code=status.HTTP_202_ACCEPTED)
async def request_event_sync(event_id: str) -> dict[str, str]:
    """Queue a calendar sync for an event."""
    event = await get_event_by_id(event_id)
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    await enqueue_calendar_sync(event_id)
    return {"status": "queued", "event_id": event_id}


@router.get("/failed", response_model=list[SyncRecord])
async def list_failed_syncs(limit: int = 100) -> list[SyncRecord]:
    """Get the most recently failed sync records."""
    return await get_failed_syncs(limit)
