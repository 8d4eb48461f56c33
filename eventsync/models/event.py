from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

EventStatus = Literal["pending", "approved", "rejected"]


class Event(BaseModel):
    """An event owned by the event-management side of the platform.

    Read-only here; the calendar engine only decides whether and how it should
    appear on an external calendar.
    """

    id: str
    slug: str
    title: str
    description: str | None = None
    location: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    is_all_day: bool = False
    is_published: bool = False
    status: EventStatus = "pending"
    organization_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_publicly_visible(self) -> bool:
        """Only approved and published events belong on a remote calendar."""
        return self.status == "approved" and self.is_published
