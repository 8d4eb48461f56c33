"""Routes Google redirects members back to after calendar consent."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from eventsync.app.dependencies import calendar_settings
from eventsync.calendar.connect import complete_calendar_connection
from eventsync.config.calendar import CalendarSyncSettings
from eventsync.errors import ConfigurationError, InvalidOAuthStateError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/integrations", tags=["integrations"])


@router.get("/google-calendar/callback")
async def google_calendar_oauth_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    settings: CalendarSyncSettings = Depends(calendar_settings),
) -> RedirectResponse:
    """Google Calendar OAuth callback endpoint."""
    if error:
        logger.error(f"Google OAuth error: {error}, description={error_description}")

    try:
        outcome = await complete_calendar_connection(
            state, code, error_description or error, settings=settings
        )
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        )
    except InvalidOAuthStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return RedirectResponse(outcome.redirect_url(settings))
