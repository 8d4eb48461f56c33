import os
from pathlib import Path
from typing import Iterator

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer
from alembic.config import Config
from alembic import command

# Ensure allowed environment for env_loader
os.environ.setdefault("ENV", "dev")

# Tables emptied between tests, children first.
_TABLES = [
    "event_automation_job",
    "event_calendar_sync",
    "calendar_connection",
    "event",
    "organization_provider",
    "provider",
    "account",
    "member",
    "organization",
]


@pytest.fixture(scope="session")
def db_url() -> Iterator[str]:
    """Start a Postgres container, run migrations, and return the DB URL."""
    with PostgresContainer("postgres:16") as pg:
        raw_url = pg.get_connection_url()
        # Normalize to psycopg3-compatible URL if needed
        url = raw_url.replace("postgresql+psycopg2://", "postgresql://")
        os.environ["DATABASE_URL"] = url

        # Run Alembic migrations against this database
        root_dir = Path(__file__).resolve().parents[2]
        alembic_cfg = Config(str(root_dir / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
        command.upgrade(alembic_cfg, "head")

        yield url


@pytest_asyncio.fixture
async def clean_db(db_url: str) -> str:
    """Empty every table so each test starts from a blank database."""
    from eventsync.db.connection import get_db_cursor

    async with get_db_cursor() as cursor:
        await cursor.execute(f"TRUNCATE {', '.join(_TABLES)} RESTART IDENTITY CASCADE")
    return db_url


@pytest_asyncio.fixture
async def seeded_org(clean_db: str) -> dict[str, str]:
    """An organization with one published event and a shared Google calendar."""
    from psycopg.types.json import Jsonb

    from eventsync.db.connection import get_db_cursor

    async with get_db_cursor() as cursor:
        await cursor.execute(
            "INSERT INTO organization (id, name, slug) VALUES (%s, %s, %s)",
            ("org-1", "Riverside Club", "riverside"),
        )
        await cursor.execute(
            "INSERT INTO member (id, organization_id, user_id) VALUES (%s, %s, %s)",
            ("member-1", "org-1", "user-1"),
        )
        await cursor.execute(
            "INSERT INTO provider (id, name, category, config) VALUES (%s, %s, %s, %s)",
            ("prov-1", "Club calendar", "google", Jsonb({"calendarId": "club@example.com"})),
        )
        await cursor.execute(
            "INSERT INTO organization_provider (organization_id, provider_id) VALUES (%s, %s)",
            ("org-1", "prov-1"),
        )
        await cursor.execute(
            """
            INSERT INTO event
                (id, slug, title, start_at, end_at, is_published, status, organization_id)
            VALUES (%s, %s, %s, '2025-03-14T18:00:00Z', '2025-03-14T20:00:00Z', TRUE, 'approved', %s)
            """,
            ("evt-1", "board-meeting", "Board Meeting", "org-1"),
        )
    return {"organization_id": "org-1", "member_id": "member-1", "event_id": "evt-1"}
