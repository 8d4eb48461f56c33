"""Settings for the external calendar integration.

The settings are a plain value object so the sync engine can be exercised
without mutating the process environment; `load_calendar_settings` is the one
place that reads it.
"""

import os

from pydantic import BaseModel

FALLBACK_SITE_BASE_URL = "http://localhost:3000"
DEFAULT_OAUTH_REDIRECT_PATH = "/api/integrations/google-calendar/callback"


def normalize_base_url(url: str) -> str:
    """Strip any trailing slash and add a scheme when one is missing."""
    url = url.strip()
    if not url.startswith("http"):
        url = f"https://{url}"
    return url.rstrip("/")


class CalendarSyncSettings(BaseModel):
    public_site_base_url: str = FALLBACK_SITE_BASE_URL
    google_client_id: str | None = None
    google_client_secret: str | None = None
    oauth_redirect_path: str = DEFAULT_OAUTH_REDIRECT_PATH
    # JSON key of the service account used for organization-wide calendars.
    service_account_info: str | None = None
    impersonated_user: str | None = None
    personal_calendar_id: str = "primary"

    @property
    def oauth_configured(self) -> bool:
        return bool(self.google_client_id) and bool(self.google_client_secret)

    @property
    def service_account_configured(self) -> bool:
        return bool(self.service_account_info) and bool(self.impersonated_user)

    @property
    def is_calendar_integration_configured(self) -> bool:
        return self.oauth_configured or self.service_account_configured

    @property
    def oauth_redirect_uri(self) -> str:
        return f"{self.public_site_base_url}{self.oauth_redirect_path}"


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_calendar_settings() -> CalendarSyncSettings:
    """Build calendar settings from environment variables."""
    base_url = _env("PUBLIC_SITE_BASE_URL") or FALLBACK_SITE_BASE_URL
    return CalendarSyncSettings(
        public_site_base_url=normalize_base_url(base_url),
        google_client_id=_env("GOOGLE_OAUTH_CLIENT_ID"),
        google_client_secret=_env("GOOGLE_OAUTH_CLIENT_SECRET"),
        service_account_info=_env("GOOGLE_SERVICE_ACCOUNT_JSON"),
        impersonated_user=_env("GOOGLE_CALENDAR_IMPERSONATED_USER"),
    )
