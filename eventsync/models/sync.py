"""Models for external calendar sync tracking."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


SyncStatus = Literal["synced", "failed", "pending"]
SyncAction = Literal["created", "updated", "deleted", "skipped"]


class SyncRecord(BaseModel):
    """Reconciliation state for one (event, member-or-organization) pair."""

    id: int
    event_id: str
    member_id: Optional[str] = Field(
        default=None, description="Member whose calendar holds the event; None for organization level"
    )
    google_event_id: Optional[str] = Field(
        default=None, description="Remote calendar event ID"
    )
    status: SyncStatus = Field(default="pending")
    last_synced_at: Optional[datetime] = Field(
        default=None, description="When the remote calendar last accepted a change"
    )
    failure_reason: Optional[str] = Field(
        default=None, description="Error message if sync failed"
    )
    created_at: datetime
    updated_at: datetime


class CalendarSyncSummary(BaseModel):
    """Aggregate counts for one drain of the calendar sync job queue.

    total and processed count jobs. The outcome counts are per calendar
    target, so a job that fans out to several members adds one outcome per
    member and the outcomes can sum to more than processed.
    """

    total: int = Field(default=0, description="Jobs selected as due")
    processed: int = Field(default=0, description="Jobs this worker claimed")
    created: int = Field(default=0, description="Targets the event was created on")
    updated: int = Field(default=0, description="Targets the event was updated on")
    deleted: int = Field(default=0, description="Targets the event was removed from")
    skipped: int = Field(default=0, description="Targets left unchanged")
    failed: int = Field(
        default=0,
        description=(
            "Targets that failed to sync, plus jobs whose targets could not be "
            "loaded. One job can add several failures."
        ),
    )

    def record(self, action: SyncAction) -> None:
        setattr(self, action, getattr(self, action) + 1)


class EventSyncStatusResponse(BaseModel):
    """Response containing every sync record kept for an event."""

    event_id: str = Field(description="ID of the event")
    is_synced: bool = Field(
        description="Whether every target currently reports a synced state"
    )
    records: list[SyncRecord] = Field(default_factory=list)
