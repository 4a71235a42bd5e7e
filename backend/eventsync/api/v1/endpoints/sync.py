"""Sync trigger, snapshot and sync-log endpoints."""
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from eventsync.core.database import get_db
from eventsync.schemas.sync import (
    SyncLogEntryResponse,
    SyncLogListResponse,
    SyncRunResponse,
    SyncSnapshotResponse,
    SyncTriggerResponse,
)
from eventsync.services.sync_logger import SyncLogQueryService
from eventsync.services.sync_state_service import SyncStateService
from eventsync.tasks.sync_tasks import sync_all_tenants_task

logger = structlog.get_logger()

router = APIRouter()


@router.post("/", response_model=SyncTriggerResponse, status_code=202)
def trigger_sync():
    """Queue an on-demand sync of all active box offices."""
    task = sync_all_tenants_task.delay()
    logger.info("api_sync_triggered", task_id=task.id)
    return SyncTriggerResponse(task_id=task.id)


@router.get("/last", response_model=SyncSnapshotResponse)
def get_last_sync(db: Annotated[Session, Depends(get_db)]):
    """Get the result of the last completed sync run."""
    snapshot = SyncStateService(db).get_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No sync has run yet")
    return snapshot


@router.get("/logs", response_model=SyncLogListResponse)
def list_sync_logs(
    db: Annotated[Session, Depends(get_db)],
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=500),
    run_id: str | None = Query(None, description="Filter to one sync run"),
):
    """List sync log entries, newest first."""
    result = SyncLogQueryService(db).get_entries(page=page, per_page=per_page, run_id=run_id)
    return SyncLogListResponse(
        entries=[SyncLogEntryResponse.model_validate(entry) for entry in result["entries"]],
        total=result["total"],
        pages=result["pages"],
    )


@router.get("/logs/runs", response_model=list[SyncRunResponse])
def list_sync_runs(
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(50, ge=1, le=500),
):
    """List recent sync runs found in the log."""
    return SyncLogQueryService(db).get_sync_runs(limit=limit)


@router.delete("/logs", status_code=204)
def clear_sync_logs(db: Annotated[Session, Depends(get_db)]):
    """Delete all sync log entries."""
    SyncLogQueryService(db).clear_all()
    return None
