"""Database access functions for event calendar sync records.

One row exists per (event, member) pair, with a NULL member standing for the
organization-level calendar. Rows are created lazily and then updated in
place; they are never deleted.
"""

import logging
from datetime import datetime, timezone

from psycopg import sql

from eventsync.models.sync import SyncRecord, SyncStatus
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

_SYNC_COLUMNS = """
    id, event_id, member_id, google_event_id, status, last_synced_at,
    failure_reason, created_at, updated_at
"""


def _row_to_sync_record(row: tuple) -> SyncRecord:
    """Convert a database row to a SyncRecord object."""
    (
        sync_id,
        event_id,
        member_id,
        google_event_id,
        status,
        last_synced_at,
        failure_reason,
        created_at,
        updated_at,
    ) = row
    return SyncRecord(
        id=sync_id,
        event_id=event_id,
        member_id=member_id,
        google_event_id=google_event_id,
        status=status,
        last_synced_at=last_synced_at,
        failure_reason=failure_reason,
        created_at=created_at,
        updated_at=updated_at,
    )


async def get_sync_record(event_id: str, member_id: str | None) -> SyncRecord | None:
    """Get the sync record for an event and member (None for organization level)."""
    try:
        async with get_db_cursor() as cursor:
            await cursor.execute(
                f"""
                SELECT {_SYNC_COLUMNS}
                FROM event_calendar_sync
                WHERE event_id = %s AND member_id IS NOT DISTINCT FROM %s::text
                """,
                (event_id, member_id),
            )
            row = await cursor.fetchone()
    except Exception as e:
        logger.exception(
            f"Database error retrieving sync record: event_id={event_id}, "
            f"member_id={member_id}, exception_type={type(e).__name__}, error={e}"
        )
        raise

    if row is None:
        logger.debug(f"No sync record found: event_id={event_id}, member_id={member_id}")
        return None
    return _row_to_sync_record(row)


async def ensure_sync_record(event_id: str, member_id: str | None) -> SyncRecord:
    """Get the sync record for a pair, creating a `pending` one if none exists."""
    try:
        async with get_db_cursor() as cursor:
            await cursor.execute(
                """
                INSERT INTO event_calendar_sync (event_id, member_id, status)
                VALUES (%s, %s, 'pending')
                ON CONFLICT DO NOTHING
                """,
                (event_id, member_id),
            )
            await cursor.execute(
                f"""
                SELECT {_SYNC_COLUMNS}
                FROM event_calendar_sync
                WHERE event_id = %s AND member_id IS NOT DISTINCT FROM %s::text
                """,
                (event_id, member_id),
            )
            row = await cursor.fetchone()
    except Exception as e:
        logger.exception(
            f"Database error ensuring sync record: event_id={event_id}, "
            f"member_id={member_id}, exception_type={type(e).__name__}, error={e}"
        )
        raise

    if row is None:
        raise RuntimeError(
            f"Failed to create sync record for event_id={event_id}, member_id={member_id}"
        )
    return _row_to_sync_record(row)


async def update_sync_record(
    event_id: str,
    member_id: str | None,
    google_event_id: str | None = None,
    status: SyncStatus | None = None,
    last_synced_at: datetime | None = None,
    failure_reason: str | None = None,
    clear_google_event_id: bool = False,
    clear_failure_reason: bool = False,
) -> SyncRecord | None:
    """Update an existing sync record in place."""
    update_details = []
    if google_event_id is not None:
        update_details.append(f"google_event_id={google_event_id}")
    elif clear_google_event_id:
        update_details.append("clear_google_event_id=True")
    if status is not None:
        update_details.append(f"status={status}")
    if failure_reason is not None:
        update_details.append(f"failure_reason={failure_reason[:100]}")
    elif clear_failure_reason:
        update_details.append("clear_failure_reason=True")

    logger.info(
        f"Updating sync record: event_id={event_id}, member_id={member_id}, "
        f"updates=[{', '.join(update_details)}]"
    )

    update_fields: list[sql.Composable] = []
    params: list = []

    if google_event_id is not None:
        update_fields.append(sql.SQL("google_event_id = %s"))
        params.append(google_event_id)
    elif clear_google_event_id:
        update_fields.append(sql.SQL("google_event_id = NULL"))

    if status is not None:
        update_fields.append(sql.SQL("status = %s"))
        params.append(status)

    if last_synced_at is not None:
        update_fields.append(sql.SQL("last_synced_at = %s"))
        params.append(last_synced_at)

    if failure_reason is not None:
        update_fields.append(sql.SQL("failure_reason = %s"))
        params.append(failure_reason)
    elif clear_failure_reason:
        update_fields.append(sql.SQL("failure_reason = NULL"))

    if not update_fields:
        return await get_sync_record(event_id, member_id)

    update_fields.append(sql.SQL("updated_at = %s"))
    params.append(datetime.now(timezone.utc))
    params.extend([event_id, member_id])

    query = sql.SQL("""
        UPDATE event_calendar_sync
        SET {update_fields}
        WHERE event_id = %s AND member_id IS NOT DISTINCT FROM %s::text
        RETURNING id, event_id, member_id, google_event_id, status, last_synced_at,
                  failure_reason, created_at, updated_at
    """).format(update_fields=sql.SQL(", ").join(update_fields))

    try:
        async with get_db_cursor() as cursor:
            await cursor.execute(query, params)
            row = await cursor.fetchone()
    except Exception as e:
        logger.exception(
            f"Database error updating sync record: event_id={event_id}, "
            f"member_id={member_id}, exception_type={type(e).__name__}, error={e}"
        )
        raise

    if row is None:
        logger.warning(
            f"No sync record found to update: event_id={event_id}, member_id={member_id}"
        )
        return None
    return _row_to_sync_record(row)


async def get_sync_records_for_event(event_id: str) -> list[SyncRecord]:
    """Get every sync record kept for an event."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {_SYNC_COLUMNS}
            FROM event_calendar_sync
            WHERE event_id = %s
            ORDER BY member_id NULLS FIRST
            """,
            (event_id,),
        )
        rows = await cursor.fetchall()
    return [_row_to_sync_record(row) for row in rows]


async def get_failed_syncs(limit: int = 100) -> list[SyncRecord]:
    """Get sync records in the failed state, most recently updated first."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {_SYNC_COLUMNS}
            FROM event_calendar_sync
            WHERE status = 'failed'
            ORDER BY updated_at DESC
            LIMIT %s
            """,
            (limit,),
        )
        rows = await cursor.fetchall()

    results = [_row_to_sync_record(row) for row in rows]
    logger.info(f"Retrieved failed sync records: count={len(results)}")
    return results
