"""Event document store.

The sync engine talks to storage only through the ``DocumentStore`` protocol.
``SqlEventStore`` is the SQLAlchemy-backed implementation used by the service.
"""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventsync.core.config import settings
from eventsync.models.event import Event
from eventsync.services.image_service import ImageFetcher

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GlobalScope:
    """Unscoped sync for single-account deployments; matches every document."""

    name: str = "Default"


@dataclass(frozen=True)
class TenantScope:
    """Sync scoped to a single tenant's documents."""

    tenant_id: int
    name: str
    slug: str


Scope = GlobalScope | TenantScope


class StoreError(Exception):
    """Raised when a document write fails."""


class DocumentStore(Protocol):
    """Storage operations the sync engine depends on."""

    def find_one(self, scope: Scope, remote_id: str) -> Event | None: ...

    def find_all(self, scope: Scope) -> list[Event]: ...

    def count(self, scope: Scope) -> int: ...

    def create(self, fields: dict[str, Any]) -> int: ...

    def update(self, event_id: int, fields: dict[str, Any]) -> None: ...

    def delete(self, event_id: int) -> None: ...

    def get_meta(self, event_id: int, key: str, default: Any = None) -> Any: ...

    def set_meta(self, event_id: int, key: str, value: Any) -> None: ...

    def set_primary_image(self, event_id: int, source_url: str) -> bool: ...


class SqlEventStore:
    """DocumentStore backed by the ``events`` table."""

    def __init__(
        self,
        db: Session,
        image_fetcher: ImageFetcher | None = None,
        media_dir: str | Path | None = None,
    ):
        self.db = db
        self.image_fetcher = image_fetcher or ImageFetcher()
        self.media_dir = Path(media_dir or settings.MEDIA_DIR)

    @staticmethod
    def _scoped(stmt, scope: Scope):
        if isinstance(scope, TenantScope):
            return stmt.where(Event.tenant_id == scope.tenant_id)
        return stmt

    def find_one(self, scope: Scope, remote_id: str) -> Event | None:
        stmt = self._scoped(select(Event).where(Event.remote_event_id == remote_id), scope)
        return self.db.scalars(stmt.order_by(Event.id).limit(1)).first()

    def find_all(self, scope: Scope) -> list[Event]:
        stmt = self._scoped(select(Event), scope).order_by(Event.id)
        return list(self.db.scalars(stmt).all())

    def count(self, scope: Scope) -> int:
        stmt = self._scoped(select(func.count(Event.id)), scope)
        return self.db.scalar(stmt) or 0

    def get(self, event_id: int) -> Event | None:
        return self.db.get(Event, event_id)

    def _require(self, event_id: int) -> Event:
        event = self.get(event_id)
        if event is None:
            raise StoreError(f"Event {event_id} not found")
        return event

    def _commit(self, operation: str, **context: Any) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("event_store_write_failed", operation=operation, error=str(e), **context)
            raise StoreError(f"{operation} failed: {e}") from e

    def create(self, fields: dict[str, Any]) -> int:
        """Insert a new event document and return its local ID."""
        event = Event(**fields)
        self.db.add(event)
        self._commit("create", remote_event_id=fields.get("remote_event_id"))
        return event.id

    def update(self, event_id: int, fields: dict[str, Any]) -> None:
        """Overwrite the given fields on an existing document."""
        event = self._require(event_id)
        for field, value in fields.items():
            setattr(event, field, value)
        self._commit("update", event_id=event_id)

    def delete(self, event_id: int) -> None:
        """Permanently delete a document and its stored image."""
        event = self._require(event_id)
        image_ref = event.image_ref
        self.db.delete(event)
        self._commit("delete", event_id=event_id)
        if image_ref:
            (self.media_dir / image_ref).unlink(missing_ok=True)

    def get_meta(self, event_id: int, key: str, default: Any = None) -> Any:
        event = self.get(event_id)
        if event is None or not event.meta:
            return default
        return event.meta.get(key, default)

    def set_meta(self, event_id: int, key: str, value: Any) -> None:
        event = self._require(event_id)
        # Reassign so SQLAlchemy sees the JSON column change.
        event.meta = {**(event.meta or {}), key: value}
        self._commit("set_meta", event_id=event_id, key=key)

    def set_primary_image(self, event_id: int, source_url: str) -> bool:
        """
        Download and attach the event's primary image.

        Idempotent: when the source URL matches the one already attached, no
        request is made.

        Args:
            event_id: Local event ID
            source_url: Remote image URL

        Returns:
            True if a new image was stored, False if unchanged

        Raises:
            ImageFetchError: If the URL is not allow-listed or the download fails
            StoreError: If the document cannot be updated
        """
        event = self._require(event_id)
        if event.image_source_url == source_url and event.image_ref:
            return False

        content = self.image_fetcher.fetch(source_url)

        digest = hashlib.sha256(source_url.encode()).hexdigest()[:16]
        stem = re.sub(r"[^a-z0-9]+", "-", (event.title or "event").lower()).strip("-")[:60] or "event"
        filename = f"{digest}-{stem}-header.jpg"

        self.media_dir.mkdir(parents=True, exist_ok=True)
        (self.media_dir / filename).write_bytes(content)

        previous = event.image_ref
        event.image_source_url = source_url
        event.image_ref = filename
        self._commit("set_primary_image", event_id=event_id)

        if previous and previous != filename:
            (self.media_dir / previous).unlink(missing_ok=True)

        logger.info("event_image_stored", event_id=event_id, image_ref=filename)
        return True
