from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

AutomationJobType = Literal["calendar_sync", "digest_refresh"]
AutomationJobStatus = Literal["pending", "processing", "completed", "failed"]


class AutomationJob(BaseModel):
    """A queued unit of asynchronous work tied to an event."""

    id: str
    event_id: str
    type: AutomationJobType
    status: AutomationJobStatus = "pending"
    payload: dict[str, Any] = Field(default_factory=dict)
    attempts: int = 0
    last_error: str | None = None
    scheduled_at: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AutomationJobRequest(BaseModel):
    """A request to enqueue an automation job."""

    event_id: str
    type: AutomationJobType
    payload: dict[str, Any] = Field(default_factory=dict)
    scheduled_at: datetime | None = None
    status: AutomationJobStatus = "pending"
