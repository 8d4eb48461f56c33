"""Where a sync for one event lands, and with which credentials."""

from dataclasses import dataclass
from typing import Literal

from eventsync.integrations.google.calendar_client import GoogleCalendarClient
from eventsync.models.calendar import CalendarConnection, StoredCredentials


@dataclass(frozen=True)
class OAuthTarget:
    """A member's own OAuth connection. The only target with a connection lifecycle."""

    connection: CalendarConnection
    credentials: StoredCredentials
    kind: Literal["oauth"] = "oauth"

    @property
    def member_id(self) -> str:
        return self.connection.member_id

    @property
    def calendar_id(self) -> str:
        # The resolver only builds OAuth targets for connections with a calendar.
        return self.connection.calendar_id or ""


@dataclass(frozen=True)
class SharedTarget:
    """The organization's shared calendar, written through the service account."""

    calendar_id: str
    kind: Literal["shared"] = "shared"

    @property
    def member_id(self) -> None:
        return None


@dataclass(frozen=True)
class PersonalTarget:
    """A user's personal calendar, reached through their linked sign-in account."""

    member_id: str
    user_id: str
    client: GoogleCalendarClient
    calendar_id: str = "primary"
    kind: Literal["personal"] = "personal"


CalendarTarget = OAuthTarget | SharedTarget | PersonalTarget
