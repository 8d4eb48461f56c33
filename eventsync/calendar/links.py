from urllib.parse import quote

from eventsync.config.calendar import CalendarSyncSettings
from eventsync.models.event import Event


def build_canonical_event_url(event: Event, settings: CalendarSyncSettings) -> str:
    """Absolute URL of the event's public page."""
    return f"{settings.public_site_base_url}/events/{quote(event.slug, safe='')}"
