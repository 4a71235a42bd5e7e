"""Celery application configuration for scheduled and on-demand syncs."""

from celery import Celery

from eventsync.core.config import settings

celery_app = Celery(
    "eventsync",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["eventsync.tasks.sync_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.SYNC_TASK_TIME_LIMIT_SECONDS,
    task_soft_time_limit=max(settings.SYNC_TASK_TIME_LIMIT_SECONDS - 300, 1),
    worker_prefetch_multiplier=1,  # Only take one task at a time
    task_acks_late=True,  # Acknowledge tasks only after completion
    task_reject_on_worker_lost=True,  # Reject tasks if worker dies
    result_expires=3600,  # Results expire after 1 hour
    beat_schedule={
        "sync-all-tenants": {
            "task": "sync_all_tenants",
            "schedule": float(settings.SYNC_INTERVAL_SECONDS),
        },
        "purge-sync-logs": {
            "task": "purge_sync_logs",
            "schedule": 86400.0,
        },
    },
)
