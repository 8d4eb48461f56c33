"""Routes called by the scheduler to drain the automation job queue."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from eventsync.app.auth import require_cron_secret
from eventsync.app.dependencies import calendar_settings
from eventsync.calendar.drainer import (
    DEFAULT_BATCH_SIZE,
    process_pending_calendar_sync_jobs,
)
from eventsync.config.calendar import CalendarSyncSettings
from eventsync.models.sync import CalendarSyncSummary

MAX_BATCH_SIZE = 100

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)]
)


def parse_limit(raw: str | None) -> int:
    """Parse the batch size query parameter.

    Raises:
        ValueError: If the value is not an integer between 1 and MAX_BATCH_SIZE.
    """
    if raw is None or raw == "":
        return DEFAULT_BATCH_SIZE
    limit = int(raw)
    if not 1 <= limit <= MAX_BATCH_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_BATCH_SIZE}")
    return limit


@router.api_route(
    "/calendar-sync", methods=["GET", "POST"], response_model=CalendarSyncSummary
)
async def run_calendar_sync(
    limit: str | None = None,
    settings: CalendarSyncSettings = Depends(calendar_settings),
) -> CalendarSyncSummary:
    """Process due calendar sync jobs."""
    try:
        batch_size = parse_limit(limit)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid limit: {limit}. Must be an integer between 1 and {MAX_BATCH_SIZE}.",
        )

    summary = await process_pending_calendar_sync_jobs(batch_size, settings=settings)
    if summary.failed:
        logger.warning(f"Calendar sync batch had failures: {summary.model_dump()}")
    return summary
