"""Advisory run locks preventing overlapping syncs of the same tenant."""
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from eventsync.core.config import settings
from eventsync.models.sync_state import SyncLock

logger = structlog.get_logger(__name__)

GLOBAL_LOCK_KEY = "global"


def tenant_lock_key(tenant_id: int) -> str:
    return f"tenant:{tenant_id}"


class SyncLockService:
    """Row-based locks with a TTL so a crashed worker cannot block syncs forever."""

    def __init__(self, db: Session, ttl_seconds: int | None = None):
        self.db = db
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SYNC_LOCK_TTL_SECONDS

    def acquire(self, key: str, owner: str) -> bool:
        """
        Try to take a lock.

        Args:
            key: Lock key, e.g. "tenant:3"
            owner: Run ID taking the lock

        Returns:
            True if the lock is now held by owner
        """
        now = datetime.now(UTC)
        self.db.execute(
            delete(SyncLock)
            .where(SyncLock.lock_key == key, SyncLock.expires_at < now)
            .execution_options(synchronize_session="fetch")
        )
        if self.is_locked(key):
            self.db.commit()
            logger.warning("sync_lock_busy", lock_key=key, owner=owner)
            return False

        self.db.add(
            SyncLock(
                lock_key=key,
                owner=owner,
                acquired_at=now,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
            )
        )
        try:
            self.db.commit()
        except (IntegrityError, FlushError):
            self.db.rollback()
            logger.warning("sync_lock_busy", lock_key=key, owner=owner)
            return False

        logger.debug("sync_lock_acquired", lock_key=key, owner=owner)
        return True

    def release(self, key: str, owner: str) -> None:
        """Release a lock if it is still held by owner."""
        self.db.execute(
            delete(SyncLock)
            .where(SyncLock.lock_key == key, SyncLock.owner == owner)
            .execution_options(synchronize_session="fetch")
        )
        self.db.commit()
        logger.debug("sync_lock_released", lock_key=key, owner=owner)

    def is_locked(self, key: str) -> bool:
        """Return True if an unexpired lock exists for key."""
        stmt = select(SyncLock.lock_key).where(
            SyncLock.lock_key == key, SyncLock.expires_at >= datetime.now(UTC)
        )
        return self.db.scalars(stmt).first() is not None
