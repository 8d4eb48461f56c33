"""Timezone utility functions for events sent to external calendars."""

from datetime import datetime, timezone
from typing import Any
import zoneinfo

# Metadata keys that may carry an event's IANA timezone, in order of preference.
TIMEZONE_METADATA_KEYS = ("timezone", "timeZone", "tz")


def get_event_timezone(metadata: dict[str, Any] | None) -> str | None:
    """
    Get the event's IANA timezone from its metadata.

    Returns None if no key holds a non-blank string, or if the first such
    value is not a known timezone.
    """
    if not metadata:
        return None

    candidate = next(
        (
            value.strip()
            for key in TIMEZONE_METADATA_KEYS
            if isinstance(value := metadata.get(key), str) and value.strip()
        ),
        None,
    )
    if candidate is None:
        return None

    try:
        zoneinfo.ZoneInfo(candidate)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        return None
    return candidate


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
