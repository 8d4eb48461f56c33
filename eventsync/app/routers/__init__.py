from .cron import router as cron_router
from .integrations import router as integrations_router
from .sync import router as sync_router

__all__ = [
    "cron_router",
    "integrations_router",
    "sync_router",
]
