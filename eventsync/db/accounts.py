"""Database operations for users' linked sign-in accounts."""

import logging

from eventsync.models.calendar import LinkedGoogleAccount, StoredCredentials
from .connection import get_db_cursor

GOOGLE_PROVIDER_ID = "google"

logger = logging.getLogger(__name__)


async def get_linked_google_account(user_id: str) -> LinkedGoogleAccount | None:
    """Get a user's linked Google account, or None if they never linked one."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            SELECT user_id, access_token, refresh_token, access_token_expires_at
            FROM account
            WHERE user_id = %s AND provider_id = %s
            LIMIT 1
            """,
            (user_id, GOOGLE_PROVIDER_ID),
        )
        row = await cursor.fetchone()

    if row is None:
        return None
    return LinkedGoogleAccount(
        user_id=row[0],
        access_token=row[1],
        refresh_token=row[2],
        access_token_expires_at=row[3],
    )


async def save_linked_account_tokens(
    user_id: str, credentials: StoredCredentials
) -> None:
    """Write rotated tokens back to a user's linked Google account.

    Values the refresh did not return are left unchanged.
    """
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE account
            SET access_token = COALESCE(%s, access_token),
                refresh_token = COALESCE(%s, refresh_token),
                access_token_expires_at = COALESCE(%s, access_token_expires_at)
            WHERE user_id = %s AND provider_id = %s
            """,
            (
                credentials.access_token,
                credentials.refresh_token,
                credentials.token_expires_at,
                user_id,
                GOOGLE_PROVIDER_ID,
            ),
        )
    logger.info(f"Saved refreshed Google tokens for user_id={user_id}")
