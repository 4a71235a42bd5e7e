"""Sync trigger, snapshot and log schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from eventsync.models.sync_log import SyncLogAction, SyncLogLevel


class SyncTriggerResponse(BaseModel):
    """Response for an enqueued on-demand sync."""

    task_id: str
    status: str = "queued"


class SyncSnapshotResponse(BaseModel):
    """Last orchestrated run."""

    synced_at: datetime
    result: dict[str, Any]


class SyncLogEntryResponse(BaseModel):
    """One sync log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    run_id: str
    timestamp: datetime
    level: SyncLogLevel
    action: SyncLogAction
    remote_event_id: str
    event_title: str
    tenant_name: str
    message: str
    details: Any | None = None


class SyncLogListResponse(BaseModel):
    """Paginated sync log entries."""

    entries: list[SyncLogEntryResponse]
    total: int
    pages: int


class SyncRunResponse(BaseModel):
    """Summary of one sync run in the log."""

    run_id: str
    started: datetime
    ended: datetime
    entry_count: int
