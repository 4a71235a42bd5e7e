"""Persistence for the last orchestrated sync result."""
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.orm import Session

from eventsync.models.sync_state import SyncSnapshot

logger = structlog.get_logger(__name__)

LAST_SYNC_KEY = "last_sync"


class SyncStateService:
    """Reads and writes the "last sync" snapshot shown on dashboards."""

    def __init__(self, db: Session):
        self.db = db

    def save_snapshot(self, result: dict[str, Any]) -> SyncSnapshot:
        """Replace the stored snapshot with a serialized aggregate result."""
        snapshot = self.db.get(SyncSnapshot, LAST_SYNC_KEY)
        if snapshot is None:
            snapshot = SyncSnapshot(key=LAST_SYNC_KEY)
            self.db.add(snapshot)

        snapshot.synced_at = datetime.now(UTC)
        snapshot.result = result
        self.db.commit()
        self.db.refresh(snapshot)

        logger.info("sync_snapshot_saved", run_id=result.get("run_id"))
        return snapshot

    def get_snapshot(self) -> dict[str, Any] | None:
        """Return the last snapshot as {synced_at, result}, or None."""
        snapshot = self.db.get(SyncSnapshot, LAST_SYNC_KEY)
        if snapshot is None:
            return None
        return {"synced_at": snapshot.synced_at, "result": snapshot.result}
