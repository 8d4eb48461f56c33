"""Database operations for per-member calendar connections."""

import logging
import uuid
from datetime import datetime, timezone

from psycopg.types.json import Jsonb

from eventsync.models.calendar import (
    CalendarConnection,
    CalendarProviderType,
    ConnectionStatus,
    StoredCredentials,
)
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

_CONNECTION_COLUMNS = """
    cc.id, cc.organization_id, cc.member_id, cc.provider_type,
    cc.external_account_id, cc.calendar_id, cc.access_token, cc.refresh_token,
    cc.token_expires_at, cc.scope, cc.state_token, cc.status, cc.last_synced_at,
    cc.failure_reason, cc.metadata, cc.created_at, cc.updated_at
"""


def _row_to_connection(row: tuple) -> CalendarConnection:
    (
        connection_id,
        organization_id,
        member_id,
        provider_type,
        external_account_id,
        calendar_id,
        access_token,
        refresh_token,
        token_expires_at,
        scope,
        state_token,
        status,
        last_synced_at,
        failure_reason,
        metadata,
        created_at,
        updated_at,
    ) = row
    return CalendarConnection(
        id=connection_id,
        organization_id=organization_id,
        member_id=member_id,
        provider_type=provider_type,
        external_account_id=external_account_id,
        calendar_id=calendar_id,
        access_token=access_token,
        refresh_token=refresh_token,
        token_expires_at=token_expires_at,
        scope=scope,
        state_token=state_token,
        status=status,
        last_synced_at=last_synced_at,
        failure_reason=failure_reason,
        metadata=metadata if isinstance(metadata, dict) else {},
        created_at=created_at,
        updated_at=updated_at,
    )


async def resolve_connection(
    organization_id: str,
    member_id: str | None = None,
    provider_type: CalendarProviderType = "google",
) -> CalendarConnection | None:
    """Get the most recently updated connected calendar for an organization.

    Args:
        organization_id: Organization whose members' connections are searched
        member_id: Optionally restrict the search to one member

    Returns:
        The connection if one is connected, None otherwise
    """
    query = f"""
        SELECT {_CONNECTION_COLUMNS}
        FROM calendar_connection cc
        JOIN member m ON m.id = cc.member_id
        WHERE m.organization_id = %s
          AND cc.provider_type = %s
          AND cc.status = 'connected'
    """
    params: list = [organization_id, provider_type]
    if member_id is not None:
        query += " AND cc.member_id = %s"
        params.append(member_id)
    query += " ORDER BY cc.updated_at DESC LIMIT 1"

    async with get_db_cursor() as cursor:
        await cursor.execute(query, params)
        row = await cursor.fetchone()

    if row is None:
        logger.debug(
            f"No connected calendar: organization_id={organization_id}, member_id={member_id}"
        )
        return None
    return _row_to_connection(row)


async def list_connected_member_ids(
    organization_id: str, provider_type: CalendarProviderType = "google"
) -> list[str]:
    """Get the distinct members of an organization with a connected calendar."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            SELECT DISTINCT cc.member_id
            FROM calendar_connection cc
            JOIN member m ON m.id = cc.member_id
            WHERE m.organization_id = %s
              AND cc.provider_type = %s
              AND cc.status = 'connected'
            ORDER BY cc.member_id
            """,
            (organization_id, provider_type),
        )
        rows = await cursor.fetchall()
    return [row[0] for row in rows]


async def mark_connection_status(
    connection_id: str,
    status: ConnectionStatus,
    failure_reason: str | None = None,
) -> None:
    """Set a connection's status and failure reason."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET status = %s,
                failure_reason = %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (status, failure_reason, connection_id),
        )
    logger.info(f"Marked calendar connection {connection_id} as {status}")


async def update_connection_credentials(
    connection: CalendarConnection, credentials: StoredCredentials
) -> None:
    """Persist refreshed OAuth credentials, keeping stored values the refresh did not return."""
    refreshed_at = datetime.now(timezone.utc).isoformat()
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET access_token = %s,
                refresh_token = %s,
                token_expires_at = %s,
                scope = %s,
                metadata = metadata || %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (
                credentials.access_token or connection.access_token,
                credentials.refresh_token or connection.refresh_token,
                credentials.token_expires_at or connection.token_expires_at,
                credentials.scope or connection.scope,
                Jsonb({"lastTokenRefreshedAt": refreshed_at}),
                connection.id,
            ),
        )
    logger.info(f"Persisted refreshed credentials for calendar connection {connection.id}")


async def touch_connection_synced(connection_id: str) -> None:
    """Record a successful sync against a connection."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET last_synced_at = %s,
                failure_reason = NULL,
                status = 'connected',
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (datetime.now(timezone.utc), connection_id),
        )


async def clear_connection_credentials(connection_id: str) -> None:
    """Drop stored tokens so the member has to re-authorize."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET access_token = NULL,
                refresh_token = NULL,
                token_expires_at = NULL,
                scope = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (connection_id,),
        )
    logger.warning(f"Cleared stored credentials for calendar connection {connection_id}")


async def begin_connection(
    member_id: str,
    organization_id: str,
    started_by: str,
    provider_type: CalendarProviderType = "google",
) -> tuple[str, str]:
    """Create or reset a member's connection to `pending` ahead of an OAuth round-trip.

    Returns:
        A (connection_id, state_token) tuple
    """
    state_token = str(uuid.uuid4())
    metadata = {
        "lastConnectionStartAt": datetime.now(timezone.utc).isoformat(),
        "lastConnectionStartedBy": started_by,
    }
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            INSERT INTO calendar_connection
                (id, organization_id, member_id, provider_type, status, state_token, metadata)
            VALUES (%s, %s, %s, %s, 'pending', %s, %s)
            ON CONFLICT (member_id, organization_id, provider_type)
            DO UPDATE SET
                status = 'pending',
                state_token = EXCLUDED.state_token,
                failure_reason = NULL,
                metadata = calendar_connection.metadata || EXCLUDED.metadata,
                updated_at = CURRENT_TIMESTAMP
            RETURNING id
            """,
            (
                str(uuid.uuid4()),
                organization_id,
                member_id,
                provider_type,
                state_token,
                Jsonb(metadata),
            ),
        )
        row = await cursor.fetchone()

    if row is None:
        raise RuntimeError(f"Failed to start calendar connection for member_id={member_id}")
    connection_id = row[0]
    logger.info(
        f"Started calendar connection: connection_id={connection_id}, member_id={member_id}"
    )
    return connection_id, state_token


async def get_connection_by_state(state_token: str) -> CalendarConnection | None:
    """Get the pending connection an OAuth round-trip was started for."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {_CONNECTION_COLUMNS}
            FROM calendar_connection cc
            WHERE cc.state_token = %s
            """,
            (state_token,),
        )
        row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_connection(row)


async def complete_connection(
    connection: CalendarConnection,
    credentials: StoredCredentials,
    external_account_id: str | None = None,
    account_email: str | None = None,
    connected_by: str | None = None,
) -> bool:
    """Store the tokens from a finished OAuth round-trip and mark the connection connected.

    A refresh token missing from the exchange keeps the stored one. The
    calendar defaults to the account's primary calendar.

    Returns:
        False if the connection's state token changed since it was read, in
        which case nothing is written
    """
    metadata: dict = {
        "connectedAt": datetime.now(timezone.utc).isoformat(),
        "connectedBy": connected_by,
    }
    if account_email is not None:
        metadata["accountEmail"] = account_email

    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET access_token = %s,
                refresh_token = COALESCE(%s, refresh_token),
                token_expires_at = %s,
                scope = COALESCE(%s, scope),
                status = 'connected',
                calendar_id = COALESCE(NULLIF(TRIM(calendar_id), ''), 'primary'),
                external_account_id = COALESCE(%s, external_account_id),
                failure_reason = NULL,
                state_token = NULL,
                metadata = metadata || %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND state_token = %s
            RETURNING id
            """,
            (
                credentials.access_token,
                credentials.refresh_token,
                credentials.token_expires_at,
                credentials.scope,
                external_account_id,
                Jsonb(metadata),
                connection.id,
                connection.state_token,
            ),
        )
        row = await cursor.fetchone()

    if row is None:
        logger.warning(
            f"Calendar connection state changed before completion: connection_id={connection.id}"
        )
        return False
    logger.info(
        f"Connected calendar: connection_id={connection.id}, member_id={connection.member_id}"
    )
    return True


async def fail_connection(connection_id: str, reason: str) -> None:
    """End an OAuth round-trip in the error state and invalidate its state token."""
    metadata = {
        "lastError": reason,
        "lastErrorAt": datetime.now(timezone.utc).isoformat(),
    }
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            UPDATE calendar_connection
            SET status = 'error',
                failure_reason = %s,
                state_token = NULL,
                metadata = metadata || %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (reason, Jsonb(metadata), connection_id),
        )
    logger.warning(f"Calendar connection failed: connection_id={connection_id}, reason={reason}")
