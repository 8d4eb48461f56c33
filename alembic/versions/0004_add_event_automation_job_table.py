"""Add event_automation_job table for queued event work

Revision ID: 0004
Revises: 0003
Create Date: 2025-06-02 15:05:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0004"
down_revision: Union[str, Sequence[str], None] = "0003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE event_automation_job (
            id TEXT PRIMARY KEY,
            event_id TEXT NOT NULL REFERENCES event(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL CHECK (type IN ('calendar_sync', 'digest_refresh')),
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            attempts INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            scheduled_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );

        -- At most one pending job per event and type; re-enqueueing is a no-op.
        -- Finished jobs accumulate per event, so only pending rows are unique.
        CREATE UNIQUE INDEX uq_event_automation_job_pending
            ON event_automation_job(event_id, type, status)
            WHERE status = 'pending';
        CREATE INDEX idx_event_automation_job_due
            ON event_automation_job(type, status, scheduled_at);
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
        DROP TABLE IF EXISTS event_automation_job CASCADE;
    """)
