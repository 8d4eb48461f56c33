"""In-memory stand-ins for the stores and remote calendar the sync core talks to."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eventsync.models.automation_job import AutomationJob
from eventsync.models.calendar import CalendarConnection
from eventsync.models.event import Event
from eventsync.models.sync import SyncRecord

_ORCH = "eventsync.calendar.orchestrator"
_RES = "eventsync.calendar.resolver"
_CRED = "eventsync.calendar.credentials"
_DRAIN = "eventsync.calendar.drainer"


class InMemorySyncRecords:
    """Sync records keyed by (event_id, member_id), matching the table's unique key."""

    def __init__(self):
        self.records: dict[tuple[str, str | None], SyncRecord] = {}
        self.writes = 0
        self._next_id = 1

    def get(self, event_id: str, member_id: str | None = None) -> SyncRecord | None:
        return self.records.get((event_id, member_id))

    def seed(self, record: SyncRecord) -> None:
        self.records[(record.event_id, record.member_id)] = record

    async def ensure_sync_record(self, event_id: str, member_id: str | None) -> SyncRecord:
        key = (event_id, member_id)
        if key not in self.records:
            now = datetime.now(timezone.utc)
            self.records[key] = SyncRecord(
                id=self._next_id,
                event_id=event_id,
                member_id=member_id,
                status="pending",
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1
            self.writes += 1
        return self.records[key]

    async def update_sync_record(
        self,
        event_id: str,
        member_id: str | None,
        google_event_id: str | None = None,
        status: str | None = None,
        last_synced_at: datetime | None = None,
        failure_reason: str | None = None,
        clear_google_event_id: bool = False,
        clear_failure_reason: bool = False,
    ) -> SyncRecord | None:
        key = (event_id, member_id)
        record = self.records.get(key)
        if record is None:
            return None
        update: dict[str, Any] = {"updated_at": datetime.now(timezone.utc)}
        if google_event_id is not None:
            update["google_event_id"] = google_event_id
        elif clear_google_event_id:
            update["google_event_id"] = None
        if status is not None:
            update["status"] = status
        if last_synced_at is not None:
            update["last_synced_at"] = last_synced_at
        if failure_reason is not None:
            update["failure_reason"] = failure_reason
        elif clear_failure_reason:
            update["failure_reason"] = None
        self.records[key] = record.model_copy(update=update)
        self.writes += 1
        return self.records[key]


class FakeRemoteCalendar:
    """Records upsert/delete calls and hands out remote IDs per calendar."""

    def __init__(self):
        self.upserts: list[dict[str, Any]] = []
        self.deletes: list[dict[str, Any]] = []
        # calendar_id -> remote id returned on insert
        self.ids_by_calendar: dict[str, str] = {}
        # calendar_id -> exception raised for any call to that calendar
        self.failures: dict[str, Exception] = {}

    async def upsert_remote_event(
        self, calendar_id, event, settings, existing_remote_id=None, client=None
    ) -> str:
        self.upserts.append(
            {
                "calendar_id": calendar_id,
                "event": event,
                "existing_remote_id": existing_remote_id,
                "client": client,
            }
        )
        if calendar_id in self.failures:
            raise self.failures[calendar_id]
        if existing_remote_id:
            return existing_remote_id
        return self.ids_by_calendar.get(calendar_id, f"remote-{len(self.upserts)}")

    async def delete_remote_event(
        self, calendar_id, remote_event_id, settings, client=None
    ) -> None:
        self.deletes.append(
            {
                "calendar_id": calendar_id,
                "remote_event_id": remote_event_id,
                "client": client,
            }
        )
        if calendar_id in self.failures:
            raise self.failures[calendar_id]


class InMemoryJobQueue:
    """Automation jobs with the same conditional transitions as the SQL helpers."""

    def __init__(self):
        self.jobs: dict[str, AutomationJob] = {}

    def add(self, job: AutomationJob) -> None:
        self.jobs[job.id] = job

    async def get_due_jobs(self, job_type, limit, now=None) -> list[AutomationJob]:
        # Yield so concurrent drains all read the queue before any of them claims.
        await asyncio.sleep(0)
        now = now or datetime.now(timezone.utc)
        due = [
            job
            for job in self.jobs.values()
            if job.type == job_type and job.status == "pending" and job.scheduled_at <= now
        ]
        due.sort(key=lambda job: job.scheduled_at)
        return due[:limit]

    async def claim_job(self, job_id: str) -> AutomationJob | None:
        job = self.jobs.get(job_id)
        if job is None or job.status != "pending":
            return None
        claimed = job.model_copy(
            update={"status": "processing", "attempts": job.attempts + 1}
        )
        self.jobs[job_id] = claimed
        return claimed

    async def complete_job(self, job_id: str) -> None:
        job = self.jobs[job_id]
        if job.status == "processing":
            self.jobs[job_id] = job.model_copy(update={"status": "completed", "last_error": None})

    async def fail_job(self, job_id: str, error: str) -> None:
        job = self.jobs[job_id]
        if job.status == "processing":
            self.jobs[job_id] = job.model_copy(update={"status": "failed", "last_error": error})


@dataclass
class SyncHarness:
    events: dict[str, Event]
    records: InMemorySyncRecords
    remote: FakeRemoteCalendar
    jobs: InMemoryJobQueue
    # member_id (or None for "any member") -> connection
    connections: dict[str | None, CalendarConnection]
    resolve_connection: AsyncMock
    get_organization_calendar_config: AsyncMock
    get_personal_calendar_client_for_user: AsyncMock
    get_refreshed_client: AsyncMock
    list_connected_member_ids: AsyncMock
    mark_connection_status: AsyncMock
    touch_connection_synced: AsyncMock
    update_connection_credentials: AsyncMock
    clear_connection_credentials: AsyncMock
    oauth_client: MagicMock = field(default_factory=MagicMock)

    def add_event(self, event: Event) -> None:
        self.events[event.id] = event

    def connect(self, connection: CalendarConnection) -> None:
        self.connections[connection.member_id] = connection


@pytest.fixture
def harness() -> Iterator[SyncHarness]:
    events: dict[str, Event] = {}
    records = InMemorySyncRecords()
    remote = FakeRemoteCalendar()
    jobs = InMemoryJobQueue()
    connections: dict[str | None, CalendarConnection] = {}

    async def get_event(event_id: str) -> Event | None:
        return events.get(event_id)

    async def resolve(organization_id, member_id=None, provider_type="google"):
        candidates = [
            c
            for c in connections.values()
            if c.organization_id == organization_id and c.status == "connected"
        ]
        if member_id is not None:
            candidates = [c for c in candidates if c.member_id == member_id]
        return candidates[0] if candidates else None

    async def connected_member_ids(organization_id, provider_type="google"):
        return sorted(
            c.member_id
            for c in connections.values()
            if c.organization_id == organization_id and c.status == "connected"
        )

    oauth_client = MagicMock(name="oauth_client")
    h = SyncHarness(
        events=events,
        records=records,
        remote=remote,
        jobs=jobs,
        connections=connections,
        resolve_connection=AsyncMock(side_effect=resolve),
        get_organization_calendar_config=AsyncMock(return_value=None),
        get_personal_calendar_client_for_user=AsyncMock(),
        get_refreshed_client=AsyncMock(return_value=(oauth_client, None)),
        list_connected_member_ids=AsyncMock(side_effect=connected_member_ids),
        mark_connection_status=AsyncMock(),
        touch_connection_synced=AsyncMock(),
        update_connection_credentials=AsyncMock(),
        clear_connection_credentials=AsyncMock(),
        oauth_client=oauth_client,
    )

    patches = [
        patch(f"{_ORCH}.get_event_by_id", new=AsyncMock(side_effect=get_event)),
        patch(f"{_ORCH}.ensure_sync_record", new=AsyncMock(side_effect=records.ensure_sync_record)),
        patch(f"{_ORCH}.update_sync_record", new=AsyncMock(side_effect=records.update_sync_record)),
        patch(f"{_ORCH}.upsert_remote_event", new=AsyncMock(side_effect=remote.upsert_remote_event)),
        patch(f"{_ORCH}.delete_remote_event", new=AsyncMock(side_effect=remote.delete_remote_event)),
        patch(f"{_ORCH}.get_refreshed_client", new=h.get_refreshed_client),
        patch(f"{_RES}.resolve_connection", new=h.resolve_connection),
        patch(f"{_RES}.get_organization_calendar_config", new=h.get_organization_calendar_config),
        patch(
            f"{_RES}.get_personal_calendar_client_for_user",
            new=h.get_personal_calendar_client_for_user,
        ),
        patch(f"{_RES}.mark_connection_status", new=h.mark_connection_status),
        patch(f"{_CRED}.mark_connection_status", new=h.mark_connection_status),
        patch(f"{_CRED}.touch_connection_synced", new=h.touch_connection_synced),
        patch(f"{_CRED}.update_connection_credentials", new=h.update_connection_credentials),
        patch(f"{_CRED}.clear_connection_credentials", new=h.clear_connection_credentials),
        patch(f"{_DRAIN}.get_event_by_id", new=AsyncMock(side_effect=get_event)),
        patch(f"{_DRAIN}.list_connected_member_ids", new=h.list_connected_member_ids),
        patch(f"{_DRAIN}.get_due_jobs", new=AsyncMock(side_effect=jobs.get_due_jobs)),
        patch(f"{_DRAIN}.claim_job", new=AsyncMock(side_effect=jobs.claim_job)),
        patch(f"{_DRAIN}.complete_job", new=AsyncMock(side_effect=jobs.complete_job)),
        patch(f"{_DRAIN}.fail_job", new=AsyncMock(side_effect=jobs.fail_job)),
    ]
    for p in patches:
        p.start()
    try:
        yield h
    finally:
        for p in reversed(patches):
            p.stop()
