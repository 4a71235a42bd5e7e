"""Tenant (box office) registry."""

import re
import unicodedata
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventsync.models.event import Event
from eventsync.models.tenant import Tenant, TenantStatus
from eventsync.services.document_store import SqlEventStore
from eventsync.services.ticket_api_client import ApiError, TicketApiClient

logger = structlog.get_logger()

SLUG_MAX_LENGTH = 64
UPDATABLE_FIELDS = frozenset({"name", "api_key", "currency", "status", "last_sync_at"})
STATUS_FILTERS = {
    "active": TenantStatus.ACTIVE,
    "paused": TenantStatus.PAUSED,
    "inactive": TenantStatus.PAUSED,
}


class TenantValidationError(Exception):
    """Raised when a tenant cannot be created with the given input."""


def slugify(value: str) -> str:
    """Lowercase ASCII slug: accents stripped, other characters collapsed to '-'."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].strip("-") or "box-office"


def mask_key(key: str) -> str:
    """
    Mask an API key for display.

    Shows the first 3 and last 4 characters; keys of 7 characters or fewer
    are fully masked.
    """
    length = len(key or "")
    if length <= 7:
        return "*" * length
    return key[:3] + "*" * (length - 7) + key[-4:]


class TenantService:
    """CRUD over tenants; API keys are encrypted at rest by the model column type."""

    def __init__(
        self,
        db: Session,
        client_factory: Callable[[str], TicketApiClient] = TicketApiClient,
    ):
        """
        Initialize service.

        Args:
            db: Database session
            client_factory: Builds an API client for a plaintext key; used to
                validate keys before they are stored
        """
        self.db = db
        self.client_factory = client_factory

    def add(self, name: str, api_key: str, currency: str = "usd") -> Tenant:
        """
        Register a new tenant after validating its API key.

        Args:
            name: Display name
            api_key: Plaintext API key
            currency: Currency code

        Returns:
            Created Tenant

        Raises:
            TenantValidationError: If input is blank or the key is rejected
                upstream. Nothing is written in that case.
        """
        name = (name or "").strip()
        api_key = (api_key or "").strip()
        if not name:
            raise TenantValidationError("Box office name is required.")
        if not api_key:
            raise TenantValidationError("API key is required.")

        try:
            self.client_factory(api_key).overview()
        except ApiError as e:
            logger.warning("tenant_key_validation_failed", name=name, status_code=e.status_code)
            raise TenantValidationError(f"API key validation failed: {e.message}") from e

        tenant = Tenant(
            name=name,
            slug=self._unique_slug(name),
            api_key=api_key,
            currency=(currency or "usd").strip().lower(),
            status=TenantStatus.ACTIVE,
        )
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)

        logger.info("tenant_created", tenant_id=tenant.id, slug=tenant.slug)
        return tenant

    def get(self, tenant_id: int) -> Tenant | None:
        return self.db.get(Tenant, tenant_id)

    def get_by_slug(self, slug: str) -> Tenant | None:
        stmt = select(Tenant).where(Tenant.slug == slugify(slug))
        return self.db.scalars(stmt).first()

    def list_tenants(self, status: str = "all") -> list[Tenant]:
        """
        List tenants.

        Args:
            status: "all", "active", or "paused" ("inactive" is accepted as paused)
        """
        stmt = select(Tenant)
        if status != "all":
            stmt = stmt.where(Tenant.status == STATUS_FILTERS.get(status, TenantStatus(status)))
        stmt = stmt.order_by(Tenant.created_at.asc(), Tenant.id.asc())
        return list(self.db.scalars(stmt).all())

    def update(self, tenant_id: int, data: dict[str, Any]) -> bool:
        """
        Update whitelisted fields on a tenant.

        Unknown keys are ignored. The API key is re-encrypted on write; any
        upstream re-validation is the caller's responsibility.

        Returns:
            True if the tenant exists and something was written
        """
        tenant = self.get(tenant_id)
        if tenant is None:
            return False

        changes = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
        if not changes:
            return False

        for key, value in changes.items():
            if key == "currency":
                value = str(value).strip().lower()
            elif key == "status":
                value = TenantStatus(value)
            elif key == "name":
                value = str(value).strip()
            elif key == "last_sync_at" and value is not None and not isinstance(value, datetime):
                value = datetime.fromisoformat(str(value))
            setattr(tenant, key, value)

        self.db.commit()
        logger.info("tenant_updated", tenant_id=tenant_id, fields=sorted(changes))
        return True

    def delete(self, tenant_id: int, delete_events: bool = False) -> bool:
        """
        Delete a tenant.

        Args:
            tenant_id: Tenant ID
            delete_events: Permanently delete the tenant's events; otherwise
                they are kept and unassigned

        Returns:
            True if the tenant existed and was removed
        """
        tenant = self.get(tenant_id)
        if tenant is None:
            return False

        events = list(self.db.scalars(select(Event).where(Event.tenant_id == tenant_id)).all())

        if delete_events:
            store = SqlEventStore(self.db)
            for event in events:
                store.delete(event.id)
        else:
            for event in events:
                event.tenant_id = None
                event.box_office_label = None
            self.db.commit()

        self.db.delete(tenant)
        self.db.commit()

        logger.info("tenant_deleted", tenant_id=tenant_id, events=len(events), delete_events=delete_events)
        return True

    def event_count(self, tenant_id: int) -> int:
        """Number of event documents assigned to a tenant."""
        stmt = select(func.count(Event.id)).where(Event.tenant_id == tenant_id)
        return self.db.scalar(stmt) or 0

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug = base
        counter = 1
        while self.db.scalar(select(func.count(Tenant.id)).where(Tenant.slug == slug)):
            counter += 1
            suffix = f"-{counter}"
            slug = base[: SLUG_MAX_LENGTH - len(suffix)] + suffix
        return slug
