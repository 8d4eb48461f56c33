"""Shared-secret authentication for scheduler-triggered routes."""

import hmac
import logging
import os

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)


def get_cron_secret() -> str | None:
    secret = os.getenv("CRON_SECRET")
    if not secret:
        logger.error("CRON_SECRET environment variable is not set")
        return None
    return secret


async def require_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    """FastAPI dependency requiring the X-Cron-Secret header to match CRON_SECRET.

    Raises:
        HTTPException 401 if the header is missing or wrong, or no secret is configured.
    """
    expected = get_cron_secret()
    if (
        expected is None
        or x_cron_secret is None
        or not hmac.compare_digest(x_cron_secret, expected)
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
