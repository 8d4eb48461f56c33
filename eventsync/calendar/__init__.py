from .targets import CalendarTarget, OAuthTarget, PersonalTarget, SharedTarget
from .resolver import resolve_calendar_target
from .orchestrator import sync_event_with_calendar
from .drainer import process_pending_calendar_sync_jobs
from .connect import (
    ConnectionOutcome,
    complete_calendar_connection,
    start_calendar_connection,
)

__all__ = [
    "CalendarTarget",
    "OAuthTarget",
    "PersonalTarget",
    "SharedTarget",
    "resolve_calendar_target",
    "sync_event_with_calendar",
    "process_pending_calendar_sync_jobs",
    "ConnectionOutcome",
    "complete_calendar_connection",
    "start_calendar_connection",
]
