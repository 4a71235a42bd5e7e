"""Sync orchestrator: runs the sync engine for every active tenant.

Top-level entry point for the scheduled and on-demand triggers. Tenants are
processed sequentially; a failure in one tenant is recorded against that
tenant's name and the loop moves on to the next.
"""

import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventsync.core.config import settings
from eventsync.core.metrics import increment_sync_error, record_sync_run
from eventsync.models.tenant import Tenant
from eventsync.services.document_store import DocumentStore, GlobalScope, SqlEventStore, TenantScope
from eventsync.services.sync_engine import SyncEngine, SyncResult
from eventsync.services.sync_lock_service import GLOBAL_LOCK_KEY, SyncLockService, tenant_lock_key
from eventsync.services.sync_logger import SyncLogger, create_sync_logger
from eventsync.services.sync_state_service import SyncStateService
from eventsync.services.tenant_service import TenantService
from eventsync.services.ticket_api_client import TicketApiClient

logger = structlog.get_logger(__name__)


@dataclass
class TenantSyncSummary:
    """Per-tenant slice of an aggregate result."""

    name: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class AggregateResult:
    """Result of one orchestrated run across all tenants."""

    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)
    per_tenant: dict[str, TenantSyncSummary] = field(default_factory=dict)
    cancelled: bool = False

    def merge(self, name: str, slug: str, result: SyncResult) -> None:
        """Add one tenant's result, attributing its errors by name."""
        self.created += result.created
        self.updated += result.updated
        self.deleted += result.deleted
        self.errors.extend(f"[{name}] {error}" for error in result.errors)
        self.per_tenant[slug] = TenantSyncSummary(
            name=name,
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
            errors=list(result.errors),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": list(self.errors),
            "per_tenant": {
                slug: {
                    "name": summary.name,
                    "created": summary.created,
                    "updated": summary.updated,
                    "deleted": summary.deleted,
                    "errors": list(summary.errors),
                }
                for slug, summary in self.per_tenant.items()
            },
            "cancelled": self.cancelled,
        }


class SyncOrchestrator:
    """Iterates active tenants and aggregates their sync results."""

    def __init__(
        self,
        db: Session,
        client_factory: Callable[[str], TicketApiClient] = TicketApiClient,
        store: DocumentStore | None = None,
        logging_enabled: bool | None = None,
        legacy_api_key: str | None = None,
        lock_service: SyncLockService | None = None,
    ):
        """
        Initialize orchestrator.

        Args:
            db: Database session
            client_factory: Builds an API client for a plaintext key
            store: Event document store (defaults to SqlEventStore on db)
            logging_enabled: Write the DB sync log (defaults to settings)
            legacy_api_key: Key for the unscoped fallback run (defaults to settings)
            lock_service: Run lock service (defaults to SyncLockService on db)
        """
        self.db = db
        self.client_factory = client_factory
        self.store = store or SqlEventStore(db)
        self.logging_enabled = settings.SYNC_LOGGING_ENABLED if logging_enabled is None else logging_enabled
        self.legacy_api_key = settings.LEGACY_API_KEY if legacy_api_key is None else legacy_api_key
        self.locks = lock_service or SyncLockService(db)
        self.tenants = TenantService(db, client_factory=client_factory)

    def sync_all_tenants(self, cancel_event: threading.Event | None = None) -> AggregateResult:
        """
        Sync every active tenant.

        Falls back to a single unscoped run with the legacy API key when no
        active tenants exist.

        Args:
            cancel_event: When set, the run stops before the next tenant.
                A tenant already in progress always finishes.

        Returns:
            AggregateResult; persisting it is the caller's job
        """
        run_id = str(uuid.uuid4())
        aggregate = AggregateResult(run_id=run_id, started_at=datetime.now(UTC))
        sync_logger = create_sync_logger(self.db, self.logging_enabled, run_id)
        started = time.monotonic()
        log = logger.bind(run_id=run_id)

        tenants = self.tenants.list_tenants("active")
        log.info("sync_run_started", tenants=len(tenants))

        if not tenants:
            self._sync_legacy(aggregate, sync_logger, log)
        else:
            for tenant in tenants:
                if cancel_event is not None and cancel_event.is_set():
                    aggregate.cancelled = True
                    log.warning("sync_run_cancelled", remaining_from=tenant.slug)
                    break
                self._sync_tenant(tenant, aggregate, sync_logger, log)

        aggregate.finished_at = datetime.now(UTC)

        if aggregate.cancelled:
            status = "cancelled"
        elif aggregate.errors:
            status = "partial"
        else:
            status = "success"
        record_sync_run(status, time.monotonic() - started)

        log.info(
            "sync_run_finished",
            status=status,
            created=aggregate.created,
            updated=aggregate.updated,
            deleted=aggregate.deleted,
            errors=len(aggregate.errors),
        )
        return aggregate

    def _sync_legacy(self, aggregate: AggregateResult, sync_logger: SyncLogger, log) -> None:
        acquired = False
        try:
            acquired = self.locks.acquire(GLOBAL_LOCK_KEY, aggregate.run_id)
            if not acquired:
                aggregate.errors.append("Sync already in progress")
                return
            engine = SyncEngine(self.client_factory(self.legacy_api_key), self.store, sync_logger)
            result = engine.sync(GlobalScope())
        except Exception as e:
            self.db.rollback()
            log.exception("legacy_sync_failed")
            increment_sync_error("tenant")
            result = SyncResult(errors=[f"Unexpected error: {e}"])
        finally:
            if acquired:
                self._release(GLOBAL_LOCK_KEY, aggregate.run_id, log)

        aggregate.created = result.created
        aggregate.updated = result.updated
        aggregate.deleted = result.deleted
        aggregate.errors.extend(result.errors)

    def _sync_tenant(self, tenant: Tenant, aggregate: AggregateResult, sync_logger: SyncLogger, log) -> None:
        tenant_id = tenant.id
        name = tenant.name
        slug = tenant.slug
        lock_key = tenant_lock_key(tenant_id)
        acquired = False

        try:
            acquired = self.locks.acquire(lock_key, aggregate.run_id)
            if not acquired:
                # Another run owns this tenant; its last_sync_at is that run's to set.
                aggregate.merge(name, slug, SyncResult(errors=["Sync already in progress"]))
                return
            scope = TenantScope(tenant_id=tenant_id, name=name, slug=slug)
            engine = SyncEngine(self.client_factory(tenant.api_key), self.store, sync_logger)
            result = engine.sync(scope)
        except Exception as e:
            self.db.rollback()
            log.exception("tenant_sync_failed", tenant_id=tenant_id)
            increment_sync_error("tenant")
            result = SyncResult(errors=[f"Unexpected error: {e}"])
        finally:
            if acquired:
                self._release(lock_key, aggregate.run_id, log)

        try:
            self.tenants.update(tenant_id, {"last_sync_at": datetime.now(UTC)})
        except SQLAlchemyError as e:
            self.db.rollback()
            log.exception("tenant_last_sync_update_failed", tenant_id=tenant_id)
            increment_sync_error("tenant")
            result.errors.append(f"Failed to record last sync time: {e}")

        aggregate.merge(name, slug, result)

    def _release(self, key: str, owner: str, log) -> None:
        try:
            self.locks.release(key, owner)
        except SQLAlchemyError:
            # The lock expires on its own after the TTL.
            self.db.rollback()
            log.exception("sync_lock_release_failed", lock_key=key)


def run_sync(db: Session, cancel_event: threading.Event | None = None, **options: Any) -> AggregateResult:
    """
    Run a full sync and persist the snapshot.

    The snapshot is written here and nowhere else, so a run has a single writer.

    Args:
        db: Database session
        cancel_event: Passed through to SyncOrchestrator.sync_all_tenants
        **options: SyncOrchestrator keyword arguments; unset ones come from settings
    """
    result = SyncOrchestrator(db, **options).sync_all_tenants(cancel_event=cancel_event)
    SyncStateService(db).save_snapshot(result.to_dict())
    return result
