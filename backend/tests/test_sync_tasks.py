"""Tests for Celery sync tasks."""
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from sqlalchemy import select

from eventsync.celery_app import celery_app
from eventsync.core.config import settings
from eventsync.models.sync_log import SyncLogAction, SyncLogEntry
from eventsync.services.sync_state_service import SyncStateService
from eventsync.tasks.sync_tasks import purge_sync_logs_task, sync_all_tenants_task


def test_sync_task_runs_and_saves_snapshot(db):
    """The task runs a full sync and stores the snapshot."""
    with patch("eventsync.tasks.sync_tasks.SessionLocal", return_value=db), patch(
        "eventsync.services.sync_orchestrator.settings"
    ) as mock_settings:
        mock_settings.SYNC_LOGGING_ENABLED = False
        mock_settings.LEGACY_API_KEY = ""

        result = sync_all_tenants_task.apply().get()

    assert result["errors"] == ["Ticketing API key not configured."]
    snapshot = SyncStateService(db).get_snapshot()
    assert snapshot["result"]["run_id"] == result["run_id"]


def test_purge_task_uses_retention_setting(db):
    """Test the maintenance task removes entries past retention."""
    db.add(
        SyncLogEntry(
            run_id="run-1",
            timestamp=datetime.now(UTC) - timedelta(days=400),
            action=SyncLogAction.START,
            message="Sync started",
        )
    )
    db.commit()

    with patch("eventsync.tasks.sync_tasks.SessionLocal", return_value=db):
        deleted = purge_sync_logs_task.apply().get()

    assert deleted == 1
    assert db.scalars(select(SyncLogEntry)).all() == []


def test_beat_schedule_registers_sync():
    """Test that the hourly sync is scheduled."""
    schedule = celery_app.conf.beat_schedule

    assert schedule["sync-all-tenants"]["task"] == "sync_all_tenants"
    assert schedule["purge-sync-logs"]["task"] == "purge_sync_logs"


def test_lock_outlives_task_time_limit():
    """A sync that runs to the hard time limit still holds its tenant locks."""
    assert settings.SYNC_LOCK_TTL_SECONDS >= celery_app.conf.task_time_limit
    assert celery_app.conf.task_soft_time_limit < celery_app.conf.task_time_limit
