# This file loads env variables and must thus be imported before anything else.
from . import env_loader  # noqa: F401
from .env_loader import get_current_environment

import os
import logging

from fastapi import FastAPI

from .routers import cron_router, integrations_router, sync_router

"""FastAPI application for the calendar sync engine.

Exposes the scheduler trigger that drains calendar sync jobs and routes for
inspecting sync state. Google sends members back to the OAuth callback here.
"""

logger = logging.getLogger(__name__)

app = FastAPI()
app.include_router(cron_router)
app.include_router(sync_router)
app.include_router(integrations_router)


# Configure basic logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(filename)s:%(lineno)d",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Configure the logging for the engine itself if the user specifies it.
if "LOG_LEVEL" in os.environ:
    match os.environ["LOG_LEVEL"].upper():
        case "DEBUG":
            log_level = logging.DEBUG
        case "INFO":
            log_level = logging.INFO
        case "WARNING":
            log_level = logging.WARNING
        case "ERROR":
            log_level = logging.ERROR
        case "CRITICAL":
            log_level = logging.CRITICAL
        case _:
            raise ValueError(f"Invalid log level: {os.environ['LOG_LEVEL']}")
    logging.getLogger("eventsync").setLevel(log_level)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "environment": get_current_environment()}
