from .event import Event, EventStatus
from .calendar import (
    CalendarConnection,
    CalendarProviderType,
    ConnectionStatus,
    LinkedGoogleAccount,
    OrganizationCalendarConfig,
    StoredCredentials,
)
from .sync import (
    SyncRecord,
    SyncStatus,
    SyncAction,
    CalendarSyncSummary,
    EventSyncStatusResponse,
)
from .automation_job import (
    AutomationJob,
    AutomationJobRequest,
    AutomationJobStatus,
    AutomationJobType,
)

__all__ = [
    "Event",
    "EventStatus",
    "CalendarConnection",
    "CalendarProviderType",
    "ConnectionStatus",
    "LinkedGoogleAccount",
    "OrganizationCalendarConfig",
    "StoredCredentials",
    "SyncRecord",
    "SyncStatus",
    "SyncAction",
    "CalendarSyncSummary",
    "EventSyncStatusResponse",
    "AutomationJob",
    "AutomationJobRequest",
    "AutomationJobStatus",
    "AutomationJobType",
]
