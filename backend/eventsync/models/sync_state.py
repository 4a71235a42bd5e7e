"""Persistent sync state: last-run snapshot and per-tenant run locks."""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, String

from eventsync.models.tenant import Base


class SyncSnapshot(Base):
    """Keyed snapshot of an orchestrated run, read by dashboards."""

    __tablename__ = "sync_snapshots"

    key = Column(String(64), primary_key=True)
    synced_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    result = Column(JSON, nullable=False, default=dict)


class SyncLock(Base):
    """Advisory lock held while a tenant (or the legacy scope) is syncing."""

    __tablename__ = "sync_locks"

    lock_key = Column(String(64), primary_key=True)
    owner = Column(String(36), nullable=False)
    acquired_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<SyncLock {self.lock_key} owner={self.owner}>"
