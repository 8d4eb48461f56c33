from .event import EventFactory
from .calendar import CalendarConnectionFactory, LinkedGoogleAccountFactory, make_id_token
from .sync import SyncRecordFactory, AutomationJobFactory

__all__ = [
    "EventFactory",
    "CalendarConnectionFactory",
    "LinkedGoogleAccountFactory",
    "make_id_token",
    "SyncRecordFactory",
    "AutomationJobFactory",
]
