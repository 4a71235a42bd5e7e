"""Database models."""
from eventsync.models.event import Event, EventStatus
from eventsync.models.sync_log import SyncLogAction, SyncLogEntry, SyncLogLevel
from eventsync.models.sync_state import SyncLock, SyncSnapshot
from eventsync.models.tenant import Base, Tenant, TenantStatus

__all__ = [
    "Base",
    "Tenant",
    "TenantStatus",
    "Event",
    "EventStatus",
    "SyncLogEntry",
    "SyncLogLevel",
    "SyncLogAction",
    "SyncSnapshot",
    "SyncLock",
]
