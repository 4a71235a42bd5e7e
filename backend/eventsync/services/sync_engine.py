"""Sync engine: reconcile one scope's local event documents with the remote API.

Each tenant syncs independently. Lookups and orphan detection are scoped by
tenant, so the same remote event ID in two accounts maps to two documents and
one tenant's sync never deletes another tenant's events.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from eventsync.core.metrics import increment_events_synced, increment_sync_error
from eventsync.models.sync_log import SyncLogAction
from eventsync.services.document_store import DocumentStore, GlobalScope, Scope, StoreError, TenantScope
from eventsync.services.event_mapper import UNTITLED_EVENT, build_event_fields
from eventsync.services.image_service import ImageFetchError
from eventsync.services.sync_logger import NullSyncLogger, SyncLogger
from eventsync.services.ticket_api_client import ApiError, TicketApiClient

logger = structlog.get_logger(__name__)


@dataclass
class SyncResult:
    """Outcome of one scope's sync."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": list(self.errors),
        }


class SyncEngine:
    """Converges local event documents to one account's remote event list."""

    def __init__(
        self,
        client: TicketApiClient,
        store: DocumentStore,
        sync_logger: SyncLogger | None = None,
    ):
        self.client = client
        self.store = store
        self.sync_logger = sync_logger or NullSyncLogger()

    def sync(self, scope: Scope | None = None) -> SyncResult:
        """
        Sync all remote events for one scope.

        Args:
            scope: TenantScope for a box office, GlobalScope (default) for
                legacy single-key mode

        Returns:
            SyncResult with created/updated/deleted counts and error messages.
            The caller owns the tenant's last_sync_at bookkeeping.
        """
        scope = scope or GlobalScope()
        result = SyncResult()

        if isinstance(scope, TenantScope):
            prefix = f"[{scope.name}] "
            log_extra: dict[str, Any] = {"tenant_name": scope.name}
            log = logger.bind(tenant_id=scope.tenant_id, tenant=scope.slug)
        else:
            prefix = ""
            log_extra = {}
            log = logger.bind(tenant=None)

        self.sync_logger.info(SyncLogAction.START, "%sSync started", prefix, **log_extra)
        log.info("sync_started")

        try:
            remote_events = self.client.get_events()
        except ApiError as e:
            log.error("sync_fetch_failed", error=e.message, status_code=e.status_code)
            increment_sync_error("fetch")
            self.sync_logger.error(
                SyncLogAction.ERROR,
                "%sAPI fetch failed: %s",
                prefix,
                e.message,
                details={"status_code": e.status_code, "body": e.body},
                **log_extra,
            )
            result.errors.append(e.message)
            return result

        self.sync_logger.info(
            SyncLogAction.FETCHED,
            "%sFetched %d events from ticketing API",
            prefix,
            len(remote_events),
            **log_extra,
        )

        now = datetime.now(UTC)
        remote_ids: set[str] = set()

        for remote in remote_events:
            remote_id = str(remote.get("id") or "") if isinstance(remote, dict) else ""
            if not remote_id:
                continue

            remote_ids.add(remote_id)
            title = str(remote.get("name") or UNTITLED_EVENT)
            try:
                fields = build_event_fields(remote, scope, now)
            except (AttributeError, TypeError, ValueError) as e:
                log.error("sync_event_mapping_failed", remote_event_id=remote_id, error=str(e))
                increment_sync_error("mapping")
                result.errors.append(f"Failed to map event {remote_id}: {e}")
                self.sync_logger.error(
                    SyncLogAction.ERROR,
                    "%sFailed to map: %s",
                    prefix,
                    title,
                    remote_event_id=remote_id,
                    event_title=title,
                    **log_extra,
                )
                continue

            existing = self.store.find_one(scope, remote_id)
            try:
                if existing is not None:
                    event_id = existing.id
                    fields["meta"] = {**(existing.meta or {}), **fields["meta"]}
                    self.store.update(event_id, fields)
                    result.updated += 1
                    action = SyncLogAction.UPDATED
                else:
                    event_id = self.store.create(fields)
                    result.created += 1
                    action = SyncLogAction.CREATED
            except StoreError as e:
                verb = "update" if existing is not None else "create"
                log.error("sync_event_write_failed", remote_event_id=remote_id, operation=verb, error=str(e))
                increment_sync_error("store")
                result.errors.append(f"Failed to {verb} event {remote_id}: {e}")
                self.sync_logger.error(
                    SyncLogAction.ERROR,
                    "%sFailed to %s: %s",
                    prefix,
                    verb,
                    title,
                    remote_event_id=remote_id,
                    event_title=title,
                    **log_extra,
                )
                continue

            label = "Updated" if action is SyncLogAction.UPDATED else "Created"
            self.sync_logger.info(
                action,
                "%s%s: %s",
                prefix,
                label,
                title,
                remote_event_id=remote_id,
                event_title=title,
                **log_extra,
            )
            self._sync_image(event_id, remote, log)

        self._delete_orphans(scope, remote_ids, result, prefix, log_extra, log)

        increment_events_synced("created", result.created)
        increment_events_synced("updated", result.updated)
        increment_events_synced("deleted", result.deleted)

        self.sync_logger.info(
            SyncLogAction.END,
            "%sSync completed: Created: %d, Updated: %d, Deleted: %d",
            prefix,
            result.created,
            result.updated,
            result.deleted,
            details=result.to_dict(),
            **log_extra,
        )
        log.info(
            "sync_completed",
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
            errors=len(result.errors),
        )
        return result

    def _sync_image(self, event_id: int, remote: dict[str, Any], log) -> None:
        images = remote.get("images")
        image_url = images.get("header") if isinstance(images, dict) else None
        if not image_url or not isinstance(image_url, str):
            return
        try:
            self.store.set_primary_image(event_id, image_url)
        except (ImageFetchError, StoreError) as e:
            log.warning("sync_image_skipped", event_id=event_id, url=image_url, error=str(e))

    def _delete_orphans(
        self,
        scope: Scope,
        remote_ids: set[str],
        result: SyncResult,
        prefix: str,
        log_extra: dict[str, Any],
        log,
    ) -> None:
        local_count = self.store.count(scope)

        if not remote_ids:
            if local_count > 0:
                # An empty listing against existing data is treated as an
                # upstream fault, never as "everything was deleted".
                log.warning("sync_orphan_deletion_skipped", local_count=local_count)
                self.sync_logger.warning(
                    SyncLogAction.SKIPPED_DELETE,
                    "%sAPI returned 0 events but %d local events exist; "
                    "skipping orphan deletion as a safety measure",
                    prefix,
                    local_count,
                    **log_extra,
                )
            return

        orphans = [doc for doc in self.store.find_all(scope) if doc.remote_event_id not in remote_ids]

        for orphan in orphans:
            orphan_id = orphan.id
            orphan_title = orphan.title
            orphan_remote_id = orphan.remote_event_id
            try:
                self.store.delete(orphan_id)
            except StoreError as e:
                log.error("sync_orphan_delete_failed", event_id=orphan_id, error=str(e))
                increment_sync_error("store")
                result.errors.append(f"Failed to delete event {orphan_remote_id}: {e}")
                continue

            result.deleted += 1
            self.sync_logger.warning(
                SyncLogAction.DELETED,
                "%sDeleted orphan: %s",
                prefix,
                orphan_title,
                remote_event_id=orphan_remote_id,
                event_title=orphan_title,
                **log_extra,
            )
