"""Database operations for organization-level calendar provider configs."""

import logging
from typing import Any

from eventsync.models.calendar import OrganizationCalendarConfig
from .connection import get_db_cursor

CALENDAR_PROVIDER_CATEGORY = "google"
# Only the first few linked providers are considered.
PROVIDER_SCAN_LIMIT = 5

logger = logging.getLogger(__name__)


def parse_calendar_id(config: Any) -> str | None:
    """Extract a calendar ID from a provider config object.

    Accepts `calendarId`, `calendar_id`, or `id`, in that order of preference.
    Returns None unless the value is a non-blank string.
    """
    if not isinstance(config, dict):
        return None
    raw = config.get("calendarId", config.get("calendar_id", config.get("id")))
    if not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    return trimmed or None


async def get_organization_calendar_config(
    organization_id: str,
) -> OrganizationCalendarConfig | None:
    """Find a shared calendar configured on one of the organization's providers."""
    async with get_db_cursor() as cursor:
        await cursor.execute(
            """
            SELECT p.config
            FROM organization_provider op
            JOIN provider p ON p.id = op.provider_id
            WHERE op.organization_id = %s
              AND p.category = %s
            ORDER BY op.created_at
            LIMIT %s
            """,
            (organization_id, CALENDAR_PROVIDER_CATEGORY, PROVIDER_SCAN_LIMIT),
        )
        rows = await cursor.fetchall()

    for (config,) in rows:
        calendar_id = parse_calendar_id(config)
        if calendar_id:
            return OrganizationCalendarConfig(calendar_id=calendar_id)

    logger.debug(
        f"No shared calendar configured: organization_id={organization_id}, "
        f"providers_checked={len(rows)}"
    )
    return None
