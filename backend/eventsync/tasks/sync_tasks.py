"""Celery tasks for tenant sync and sync-log maintenance."""

import structlog
from celery.signals import worker_ready
from sqlalchemy.orm import Session

from eventsync.celery_app import celery_app
from eventsync.core.config import settings
from eventsync.core.database import SessionLocal, init_db
from eventsync.services.sync_logger import SyncLogQueryService
from eventsync.services.sync_orchestrator import run_sync

logger = structlog.get_logger(__name__)


@worker_ready.connect
def create_tables_on_worker_start(**kwargs):
    """Make sure the schema exists before the first scheduled sync."""
    init_db()


@celery_app.task(bind=True, name="sync_all_tenants")
def sync_all_tenants_task(self) -> dict:
    """
    Sync every active tenant and store the last-sync snapshot.

    Invoked hourly by beat and on demand from the API. Overlapping runs are
    safe: each tenant is guarded by a run lock.

    Returns:
        Serialized aggregate result
    """
    logger.info("sync_task_started", task_id=self.request.id)

    db: Session = SessionLocal()
    try:
        result = run_sync(db)
        logger.info(
            "sync_task_completed",
            task_id=self.request.id,
            run_id=result.run_id,
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
            errors=len(result.errors),
        )
        return result.to_dict()

    except Exception as e:
        logger.error("sync_task_failed", task_id=self.request.id, error=str(e))
        raise

    finally:
        db.close()


@celery_app.task(name="purge_sync_logs")
def purge_sync_logs_task() -> int:
    """Delete sync log entries older than the retention window."""
    db: Session = SessionLocal()
    try:
        deleted = SyncLogQueryService(db).purge_old_entries(settings.SYNC_LOG_RETENTION_DAYS)
        logger.info("sync_log_purge_task_completed", deleted=deleted)
        return deleted
    finally:
        db.close()
