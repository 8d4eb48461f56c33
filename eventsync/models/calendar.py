"""Models for calendar connections and the credentials behind them."""

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

CalendarProviderType = Literal["google", "outlook"]
ConnectionStatus = Literal["pending", "connected", "error", "revoked"]


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StoredCredentials(BaseModel):
    """OAuth credentials as persisted alongside a connection or linked account."""

    access_token: str | None = None
    refresh_token: str | None = None
    token_expires_at: datetime | None = None
    scope: str | None = None

    def needs_refresh(self, leeway: timedelta = timedelta(seconds=60)) -> bool:
        """Check whether the access token should be refreshed before use.

        Returns:
            True if there is no access token, or it expires within `leeway`.
            False if the expiry is unknown.
        """
        if not self.access_token:
            return True
        if self.token_expires_at is None:
            return False
        now = datetime.now(timezone.utc)
        return _as_aware(self.token_expires_at) <= now + leeway


class CalendarConnection(BaseModel):
    """A member's OAuth connection to an external calendar within an organization."""

    id: str
    organization_id: str
    member_id: str
    provider_type: CalendarProviderType = "google"
    external_account_id: str | None = None
    calendar_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    token_expires_at: datetime | None = None
    scope: str | None = None
    state_token: str | None = None
    status: ConnectionStatus = "pending"
    last_synced_at: datetime | None = None
    failure_reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def stored_credentials(self) -> StoredCredentials:
        return StoredCredentials(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_expires_at=self.token_expires_at,
            scope=self.scope,
        )

    def __repr__(self) -> str:
        return (
            f"CalendarConnection(id={self.id!r}, member_id={self.member_id!r}, "
            f"organization_id={self.organization_id!r}, status={self.status!r}, "
            f"access_token=<REDACTED>, refresh_token=<REDACTED>)"
        )

    __str__ = __repr__


class OrganizationCalendarConfig(BaseModel):
    """A shared calendar configured on one of the organization's providers."""

    calendar_id: str


class LinkedGoogleAccount(BaseModel):
    """A user's sign-in Google account, used for their personal calendar."""

    user_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    access_token_expires_at: datetime | None = None

    def stored_credentials(self) -> StoredCredentials:
        return StoredCredentials(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_expires_at=self.access_token_expires_at,
        )
