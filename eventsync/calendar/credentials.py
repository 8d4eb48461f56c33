"""Connection lifecycle bookkeeping after a sync attempt on an OAuth target."""

import logging
import re

from eventsync.db.calendar_connections import (
    clear_connection_credentials,
    mark_connection_status,
    touch_connection_synced,
    update_connection_credentials,
)
from eventsync.models.calendar import CalendarConnection, StoredCredentials

# Google reports revoked or expired refresh tokens as invalid_grant.
INVALID_GRANT_PATTERN = re.compile(r"invalid[_ ]grant", re.IGNORECASE)

logger = logging.getLogger(__name__)


def is_invalid_grant(message: str) -> bool:
    return bool(INVALID_GRANT_PATTERN.search(message))


async def save_rotated_credentials(
    connection: CalendarConnection, refreshed: StoredCredentials | None
) -> None:
    """Persist credentials a refresh rotated. Does nothing when no refresh happened."""
    if refreshed is not None:
        await update_connection_credentials(connection, refreshed)


async def record_connection_success(connection: CalendarConnection) -> None:
    """Mark the connection as freshly synced."""
    await touch_connection_synced(connection.id)


async def record_connection_failure(
    connection: CalendarConnection,
    error: str,
    refreshed: StoredCredentials | None = None,
) -> None:
    """Persist any rotated credentials and put the connection in the error state.

    Credentials are wiped when the refresh token itself was rejected, since
    the member has to reconnect before it can be used again.
    """
    await save_rotated_credentials(connection, refreshed)
    if is_invalid_grant(error):
        logger.warning(
            f"Refresh token rejected, clearing credentials: connection_id={connection.id}"
        )
        await clear_connection_credentials(connection.id)
    await mark_connection_status(connection.id, "error", error)
