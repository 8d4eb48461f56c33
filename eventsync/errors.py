"""Exceptions raised by the calendar sync engine."""

from typing import Literal

SyncScope = Literal["organization", "user"]


class CalendarSyncError(Exception):
    """Base class for calendar sync failures."""


class ConfigurationError(CalendarSyncError):
    """The integration or a connection is missing something it needs to sync.

    Not retried here; a person has to fix the configuration.
    """


class CredentialRefreshError(CalendarSyncError):
    """Refreshing an OAuth access token failed."""


class TokenExchangeError(CalendarSyncError):
    """Exchanging an OAuth authorization code for tokens failed."""


class InvalidOAuthStateError(CalendarSyncError):
    """An OAuth callback carried a state token no pending connection holds."""


class RemoteAPIError(CalendarSyncError):
    """The remote calendar rejected or failed a create, update, or delete call."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PersonalCalendarUnavailableError(CalendarSyncError):
    """A user has no linked account to reach their personal calendar with."""


class SyncUnavailableError(CalendarSyncError):
    """No calendar target exists at all for the requested sync.

    `scope` tells callers whether the organization has nothing connected or
    only this user does, so they can point at the right remedy.
    """

    def __init__(self, scope: SyncScope, message: str | None = None):
        if message is None:
            if scope == "user":
                message = "No calendar is connected for this user"
            else:
                message = "Organization is not linked to a calendar"
        super().__init__(message)
        self.scope = scope
