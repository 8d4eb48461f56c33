from eventsync.config.calendar import CalendarSyncSettings, load_calendar_settings


def calendar_settings() -> CalendarSyncSettings:
    """Calendar settings for the current request, read from the environment."""
    return load_calendar_settings()
