"""Database operations for the event automation job queue.

Jobs move strictly forward: pending -> processing -> completed | failed.
Claiming a job is a conditional update that only succeeds while the row is
still pending, so concurrent workers never both process the same job.
"""

import logging
import uuid
from datetime import datetime, timezone

from psycopg.types.json import Jsonb

from eventsync.models.automation_job import (
    AutomationJob,
    AutomationJobRequest,
    AutomationJobType,
)
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

_JOB_COLUMNS = """
    id, event_id, type, status, payload, attempts, last_error,
    scheduled_at, created_at, updated_at
"""


def _row_to_job(row: tuple) -> AutomationJob:
    (
        job_id,
        event_id,
        job_type,
        status,
        payload,
        attempts,
        last_error,
        scheduled_at,
        created_at,
        updated_at,
    ) = row
    return AutomationJob(
        id=job_id,
        event_id=event_id,
        type=job_type,
        status=status,
        payload=payload if isinstance(payload, dict) else {},
        attempts=attempts,
        last_error=last_error,
        scheduled_at=scheduled_at,
        created_at=created_at,
        updated_at=updated_at,
    )


async def enqueue_event_automations(jobs: list[AutomationJobRequest]) -> None:
    """Insert automation jobs, skipping any that duplicate a pending job for the same event and type."""
    if not jobs:
        return

    now = datetime.now(timezone.utc)
    async with get_db_cursor() as cursor:
        await cursor.executemany(
            """
            INSERT INTO event_automation_job
                (id, event_id, type, status, payload, scheduled_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (event_id, type, status) WHERE status = 'pending' DO NOTHING
            """,
            [
                (
                    str(uuid.uuid4()),
                    job.event_id,
                    job.type,
                    job.status,
                    Jsonb(job.payload),
                    job.scheduled_at or now,
                )
                for job in jobs
            ],
        )
    logger.info(f"Enqueued event automation jobs: count={len(jobs)}")


async def enqueue_calendar_sync(
    event_id: str, scheduled_at: datetime | None = None
) -> None:
    """Queue a calendar sync for an event."""
    await enqueue_event_automations(
        [
            AutomationJobRequest(
                event_id=event_id, type="calendar_sync", scheduled_at=scheduled_at
            )
        ]
    )


async def get_due_jobs(
    job_type: AutomationJobType, limit: int, now: datetime | None = None
) -> list[AutomationJob]:
    """Get pending jobs of a type that are due, oldest schedule first."""
    if now is None:
        now = datetime.now(timezone.utc)

    async with get_db_cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {_JOB_COLUMNS}
            FROM event_automation_job
            WHERE type = %s
              AND status = 'pending'
              AND scheduled_at <= %s
            ORDER BY scheduled_at
            LIMIT %s
            """,
            (job_type, now, limit),
        )
        rows = await cursor.fetchall()
    return [_row_to_job(row) for row in rows]


async def claim_job(job_id: str) -> AutomationJob | None:
    """Move a job from pending to processing and count the attempt.

    Returns:
        The claimed job, or None if the job was no longer pending (another
        worker claimed it first)
    """
    async with get_db_cursor() as cursor:
        await cursor.execute(
            f"""
            UPDATE event_automation_job
            SET status = 'processing',
                attempts = attempts + 1,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND status = 'pending'
            RETURNING {_JOB_COLUMNS}
            """,
            (job_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        logger.debug(f"Job already claimed elsewhere: job_id={job_id}")
        return None
    return _row_to_job(row)


async def complete_job(job_id: str) -> None:
    """Mark a processing job as completed."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE event_automation_job
            SET status = 'completed',
                last_error = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND status = 'processing'
            """,
            (job_id,),
        )


async def fail_job(job_id: str, error: str) -> None:
    """Mark a processing job as failed with the error that stopped it."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE event_automation_job
            SET status = 'failed',
                last_error = %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND status = 'processing'
            """,
            (error, job_id),
        )
    logger.warning(f"Marked automation job {job_id} as failed: {error[:200]}")
