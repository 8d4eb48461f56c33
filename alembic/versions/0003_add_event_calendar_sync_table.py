"""Add event_calendar_sync table for per-target sync tracking

A NULL member_id is the organization-level record, so the unique key treats
NULLs as equal.

Revision ID: 0003
Revises: 0002
Create Date: 2025-06-02 14:40:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0003"
down_revision: Union[str, Sequence[str], None] = "0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE event_calendar_sync (
            id SERIAL PRIMARY KEY,
            event_id TEXT NOT NULL REFERENCES event(id) ON DELETE CASCADE,
            member_id TEXT REFERENCES member(id) ON DELETE CASCADE,
            google_event_id TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('synced', 'failed', 'pending')),
            last_synced_at TIMESTAMPTZ,
            failure_reason TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_event_calendar_sync_event_member UNIQUE NULLS NOT DISTINCT (event_id, member_id)
        );

        CREATE INDEX idx_event_calendar_sync_event_id ON event_calendar_sync(event_id);
        CREATE INDEX idx_event_calendar_sync_status ON event_calendar_sync(status);
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
        DROP TABLE IF EXISTS event_calendar_sync CASCADE;
    """)
