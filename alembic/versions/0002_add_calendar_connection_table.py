"""Add calendar_connection table for per-member OAuth calendars

Revision ID: 0002
Revises: 0001
Create Date: 2025-06-02 14:25:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, Sequence[str], None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE calendar_connection (
            id TEXT PRIMARY KEY,
            organization_id TEXT NOT NULL REFERENCES organization(id) ON DELETE CASCADE,
            member_id TEXT NOT NULL REFERENCES member(id) ON DELETE CASCADE,
            provider_type VARCHAR(20) NOT NULL DEFAULT 'google' CHECK (provider_type IN ('google', 'outlook')),
            external_account_id TEXT,
            calendar_id TEXT,
            access_token TEXT,
            refresh_token TEXT,
            token_expires_at TIMESTAMPTZ,
            scope TEXT,
            state_token TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'connected', 'error', 'revoked')),
            last_synced_at TIMESTAMPTZ,
            failure_reason TEXT,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_calendar_connection_member_org_provider UNIQUE (member_id, organization_id, provider_type)
        );

        CREATE INDEX idx_calendar_connection_org_status ON calendar_connection(organization_id, status);
        CREATE INDEX idx_calendar_connection_state_token ON calendar_connection(state_token);
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
        DROP TABLE IF EXISTS calendar_connection CASCADE;
    """)
