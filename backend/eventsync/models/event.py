"""Event document model: the local mirror of one remote event."""
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from eventsync.models.tenant import Base


class EventStatus(str, Enum):
    """Local lifecycle status derived from the remote status."""

    PUBLISHED = "published"
    DRAFT = "draft"


class Event(Base):
    """Mirrored event document."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True, index=True)  # NULL = legacy/unscoped
    remote_event_id = Column(String(64), nullable=False, index=True)
    box_office_label = Column(String(64), nullable=True, index=True)  # Tenant slug

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.DRAFT)
    remote_status = Column(String(32), nullable=True)
    event_series_id = Column(String(64), nullable=True)
    currency = Column(String(10), nullable=False, default="usd")

    # Timing
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    timezone = Column(String(64), nullable=True)

    # Venue
    venue_name = Column(String(255), nullable=True)
    venue_country = Column(String(64), nullable=True)
    venue_postal_code = Column(String(32), nullable=True)

    # Pricing and capacity (prices in minor currency units)
    min_price = Column(Integer, nullable=False, default=0)
    max_price = Column(Integer, nullable=False, default=0)
    price_display = Column(String(64), nullable=False, default="Free")
    total_capacity = Column(Integer, nullable=False, default=0)
    tickets_remaining = Column(Integer, nullable=False, default=0)

    # Primary image
    image_source_url = Column(String(1000), nullable=True)
    image_ref = Column(String(500), nullable=True)

    raw_payload = Column(JSON, nullable=True)  # Full remote record, kept for audit
    meta = Column(JSON, nullable=False, default=dict)  # Generic key/value metadata

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="events")

    __table_args__ = (
        UniqueConstraint("tenant_id", "remote_event_id", name="uq_events_tenant_remote_id"),
        Index("ix_events_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Event {self.id} remote={self.remote_event_id} tenant={self.tenant_id}>"
