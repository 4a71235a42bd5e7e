"""DB-backed sync log.

The logger is picked once per run: ``NullSyncLogger`` when logging is
disabled (every call returns immediately), ``DbSyncLogger`` otherwise.
"""

import math
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventsync.models.sync_log import SyncLogAction, SyncLogEntry, SyncLogLevel

logger = structlog.get_logger(__name__)

DEFAULT_RETENTION_DAYS = 30


class SyncLogger(Protocol):
    """Sink for per-run sync log entries."""

    run_id: str

    def log(self, level: SyncLogLevel, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None: ...

    def info(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None: ...

    def warning(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None: ...

    def error(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None: ...


class NullSyncLogger:
    """Logger used when sync logging is disabled."""

    def __init__(self, run_id: str | None = None):
        self.run_id = run_id or str(uuid.uuid4())

    def log(self, level, action, message, *args, **extra):
        return

    def info(self, action, message, *args, **extra):
        return

    def warning(self, action, message, *args, **extra):
        return

    def error(self, action, message, *args, **extra):
        return


class DbSyncLogger:
    """Appends sync log entries keyed by the current run ID."""

    def __init__(self, db: Session, run_id: str | None = None):
        self.db = db
        self.run_id = run_id or str(uuid.uuid4())

    def log(self, level: SyncLogLevel, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None:
        """
        Write a log entry.

        Args:
            level: info, warning or error
            action: What happened (start, created, deleted, ...)
            message: Human-readable description; %-style template when args are given
            *args: Template arguments, only formatted when an entry is written
            **extra: Optional remote_event_id, event_title, tenant_name, details
        """
        entry = SyncLogEntry(
            run_id=self.run_id,
            timestamp=datetime.now(UTC),
            level=level,
            action=action,
            remote_event_id=str(extra.get("remote_event_id") or "")[:64],
            event_title=str(extra.get("event_title") or "")[:255],
            tenant_name=str(extra.get("tenant_name") or "")[:255],
            message=message % args if args else message,
            details=extra.get("details"),
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("sync_log_write_failed", run_id=self.run_id, action=action.value, error=str(e))

    def info(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None:
        self.log(SyncLogLevel.INFO, action, message, *args, **extra)

    def warning(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None:
        self.log(SyncLogLevel.WARNING, action, message, *args, **extra)

    def error(self, action: SyncLogAction, message: str, *args: Any, **extra: Any) -> None:
        self.log(SyncLogLevel.ERROR, action, message, *args, **extra)


def create_sync_logger(db: Session, enabled: bool, run_id: str | None = None) -> SyncLogger:
    """Return the logger implementation for the configured logging state."""
    if enabled:
        return DbSyncLogger(db, run_id)
    return NullSyncLogger(run_id)


class SyncLogQueryService:
    """Read and maintenance operations over the sync log."""

    def __init__(self, db: Session):
        self.db = db

    def get_entries(self, page: int = 1, per_page: int = 50, run_id: str | None = None) -> dict[str, Any]:
        """
        Get paginated log entries, newest first.

        Args:
            page: 1-based page number
            per_page: Entries per page
            run_id: Restrict to one sync run

        Returns:
            Dictionary with entries, total and pages
        """
        per_page = max(1, per_page)
        stmt = select(SyncLogEntry)
        count_stmt = select(func.count(SyncLogEntry.id))
        if run_id:
            stmt = stmt.where(SyncLogEntry.run_id == run_id)
            count_stmt = count_stmt.where(SyncLogEntry.run_id == run_id)

        total = self.db.scalar(count_stmt) or 0
        pages = max(1, math.ceil(total / per_page))
        offset = max(0, (page - 1) * per_page)

        stmt = stmt.order_by(SyncLogEntry.timestamp.desc(), SyncLogEntry.id.desc()).offset(offset).limit(per_page)
        entries = list(self.db.scalars(stmt).all())

        return {"entries": entries, "total": total, "pages": pages}

    def get_sync_runs(self, limit: int = 50) -> list[dict[str, Any]]:
        """List distinct sync runs with their time span and entry count."""
        started = func.min(SyncLogEntry.timestamp).label("started")
        stmt = (
            select(
                SyncLogEntry.run_id,
                started,
                func.max(SyncLogEntry.timestamp).label("ended"),
                func.count(SyncLogEntry.id).label("entry_count"),
            )
            .group_by(SyncLogEntry.run_id)
            .order_by(started.desc())
            .limit(limit)
        )
        return [
            {"run_id": row.run_id, "started": row.started, "ended": row.ended, "entry_count": row.entry_count}
            for row in self.db.execute(stmt)
        ]

    def clear_all(self) -> int:
        """Delete every log entry. Returns the number of rows removed."""
        result = self.db.execute(delete(SyncLogEntry))
        self.db.commit()
        logger.info("sync_log_cleared", deleted=result.rowcount)
        return result.rowcount

    def purge_old_entries(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """
        Delete entries older than the retention window.

        Args:
            retention_days: Days to keep; values below 1 fall back to 30

        Returns:
            Number of rows removed
        """
        if retention_days < 1:
            retention_days = DEFAULT_RETENTION_DAYS

        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
        result = self.db.execute(delete(SyncLogEntry).where(SyncLogEntry.timestamp < cutoff))
        self.db.commit()
        logger.info("sync_log_purged", deleted=result.rowcount, retention_days=retention_days)
        return result.rowcount
