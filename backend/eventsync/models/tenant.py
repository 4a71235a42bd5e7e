"""Tenant (box office) model for multi-tenancy support."""
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import declarative_base, relationship

from eventsync.models.encrypted_types import EncryptedString

Base = declarative_base()


class TenantStatus(str, Enum):
    """Tenant sync status."""

    ACTIVE = "active"
    PAUSED = "paused"


class Tenant(Base):
    """One upstream ticketing account, synced independently."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(64), nullable=False, unique=True, index=True)
    api_key = Column(EncryptedString(512), nullable=False)  # Encrypted at rest
    currency = Column(String(10), nullable=False, default="usd")
    status = Column(SAEnum(TenantStatus), nullable=False, default=TenantStatus.ACTIVE)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    # Deleting a tenant is handled by TenantService, which either deletes or
    # unassigns events explicitly.
    events = relationship("Event", back_populates="tenant", passive_deletes=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Tenant {self.slug}: {self.name}>"
