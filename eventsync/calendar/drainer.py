"""Drain due calendar sync jobs from the automation job queue."""

import logging

from eventsync.config.calendar import CalendarSyncSettings, load_calendar_settings
from eventsync.db.automation_jobs import claim_job, complete_job, fail_job, get_due_jobs
from eventsync.db.calendar_connections import list_connected_member_ids
from eventsync.db.events import get_event_by_id
from eventsync.models.automation_job import AutomationJob
from eventsync.models.sync import CalendarSyncSummary
from .orchestrator import error_message, sync_event_with_calendar

DEFAULT_BATCH_SIZE = 10

logger = logging.getLogger(__name__)


async def _sync_member_ids(event_id: str) -> list[str | None]:
    """Members whose calendars the event fans out to. [None] means the organization level."""
    event = await get_event_by_id(event_id)
    if event is None or event.organization_id is None:
        return [None]
    member_ids = await list_connected_member_ids(event.organization_id)
    return list(member_ids) or [None]


async def _process_job(
    job: AutomationJob, summary: CalendarSyncSummary, settings: CalendarSyncSettings
) -> None:
    try:
        member_ids = await _sync_member_ids(job.event_id)
    except Exception as e:
        logger.exception(
            f"Failed to load calendar sync targets: job_id={job.id}, event_id={job.event_id}"
        )
        summary.failed += 1
        await fail_job(job.id, error_message(e))
        return

    failures: list[str] = []
    for member_id in member_ids:
        try:
            action = await sync_event_with_calendar(
                job.event_id, member_id=member_id, settings=settings
            )
        except Exception as e:
            logger.exception(
                f"Calendar sync failed for target: job_id={job.id}, "
                f"event_id={job.event_id}, member_id={member_id}"
            )
            summary.failed += 1
            failures.append(error_message(e))
            continue
        summary.record(action)

    if failures:
        await fail_job(job.id, failures[0])
    else:
        await complete_job(job.id)


async def process_pending_calendar_sync_jobs(
    limit: int = DEFAULT_BATCH_SIZE, settings: CalendarSyncSettings | None = None
) -> CalendarSyncSummary:
    """Claim and run due calendar sync jobs, one target at a time.

    A job completes only if every target synced; otherwise it fails with the
    first target's error. Jobs claimed by another worker in the meantime are
    skipped.
    """
    if settings is None:
        settings = load_calendar_settings()

    jobs = await get_due_jobs("calendar_sync", limit)
    summary = CalendarSyncSummary(total=len(jobs))

    for job in jobs:
        claimed = await claim_job(job.id)
        if claimed is None:
            continue
        summary.processed += 1
        await _process_job(claimed, summary, settings)

    logger.info(f"Calendar sync batch finished: {summary.model_dump()}")
    return summary
