"""Tests for sync trigger, snapshot and log endpoints."""
from unittest.mock import MagicMock, patch

from eventsync.models.sync_log import SyncLogAction
from eventsync.services.sync_logger import DbSyncLogger
from eventsync.services.sync_state_service import SyncStateService


def test_trigger_sync_enqueues_task(client):
    """Test that a manual trigger queues the sync task."""
    with patch("eventsync.api.v1.endpoints.sync.sync_all_tenants_task") as mock_task:
        mock_task.delay.return_value = MagicMock(id="task-123")

        response = client.post("/api/v1/sync/")

    assert response.status_code == 202
    assert response.json() == {"task_id": "task-123", "status": "queued"}
    mock_task.delay.assert_called_once_with()


def test_last_sync_not_found(client):
    """Test the snapshot endpoint before any run."""
    assert client.get("/api/v1/sync/last").status_code == 404


def test_last_sync(client, db):
    """Test reading the stored snapshot."""
    SyncStateService(db).save_snapshot({"run_id": "run-1", "created": 2, "errors": []})

    response = client.get("/api/v1/sync/last")

    assert response.status_code == 200
    assert response.json()["result"] == {"run_id": "run-1", "created": 2, "errors": []}


def test_list_sync_logs(client, db):
    """Test paginated log listing and run filter."""
    first = DbSyncLogger(db, run_id="run-1")
    first.info(SyncLogAction.START, "[Alpha] Sync started", tenant_name="Alpha")
    first.info(SyncLogAction.CREATED, "[Alpha] Created: Jazz Night", remote_event_id="ev_1", tenant_name="Alpha")
    DbSyncLogger(db, run_id="run-2").info(SyncLogAction.START, "Sync started")

    response = client.get("/api/v1/sync/logs", params={"per_page": 2})
    filtered = client.get("/api/v1/sync/logs", params={"run_id": "run-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["pages"] == 2
    assert len(data["entries"]) == 2
    assert filtered.json()["total"] == 2
    assert {e["action"] for e in filtered.json()["entries"]} == {"start", "created"}


def test_list_sync_runs(client, db):
    """Test listing runs found in the log."""
    DbSyncLogger(db, run_id="run-1").info(SyncLogAction.START, "Sync started")
    DbSyncLogger(db, run_id="run-1").info(SyncLogAction.END, "Sync completed")

    response = client.get("/api/v1/sync/logs/runs")

    assert response.status_code == 200
    assert response.json()[0]["run_id"] == "run-1"
    assert response.json()[0]["entry_count"] == 2


def test_clear_sync_logs(client, db):
    """Test clearing the log."""
    DbSyncLogger(db, run_id="run-1").info(SyncLogAction.START, "Sync started")

    assert client.delete("/api/v1/sync/logs").status_code == 204
    assert client.get("/api/v1/sync/logs").json()["total"] == 0
