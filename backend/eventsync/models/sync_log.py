"""Sync log model: optional, user-facing trail of sync runs."""

import enum
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text
from sqlalchemy import Enum as SQLEnum

from eventsync.models.tenant import Base


class SyncLogLevel(str, enum.Enum):
    """Severity of a sync log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncLogAction(str, enum.Enum):
    """What a sync log entry records."""
    START = "start"
    FETCHED = "fetched"
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED_DELETE = "skipped_delete"
    ERROR = "error"
    END = "end"


class SyncLogEntry(Base):
    """Model for sync log entries."""

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(String(36), nullable=False, default="", index=True)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)
    level = Column(SQLEnum(SyncLogLevel), nullable=False, default=SyncLogLevel.INFO)
    action = Column(SQLEnum(SyncLogAction), nullable=False)
    remote_event_id = Column(String(64), nullable=False, default="", index=True)
    event_title = Column(String(255), nullable=False, default="")
    tenant_name = Column(String(255), nullable=False, default="", index=True)
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_sync_log_run_timestamp", "run_id", "timestamp"),
    )
