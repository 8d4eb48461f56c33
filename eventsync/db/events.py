"""Read-only access to events owned by the event-management side."""

import logging

from eventsync.models.event import Event
from .connection import get_db_cursor

logger = logging.getLogger(__name__)


def _row_to_event(row: tuple) -> Event:
    (
        event_id,
        slug,
        title,
        description,
        location,
        start_at,
        end_at,
        is_all_day,
        is_published,
        status,
        organization_id,
        metadata,
    ) = row
    return Event(
        id=event_id,
        slug=slug,
        title=title,
        description=description,
        location=location,
        start_at=start_at,
        end_at=end_at,
        is_all_day=is_all_day,
        is_published=is_published,
        status=status,
        organization_id=organization_id,
        # jsonb may hold a non-object value; only objects are usable metadata.
        metadata=metadata if isinstance(metadata, dict) else {},
    )


async def get_event_by_id(event_id: str) -> Event | None:
    """Get a single event by ID, or None if it does not exist."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, slug, title, description, location, start_at, end_at,
                   is_all_day, is_published, status, organization_id, metadata
            FROM event
            WHERE id = %s
            """,
            (event_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        logger.debug(f"No event found for event_id={event_id}")
        return None
    return _row_to_event(row)
