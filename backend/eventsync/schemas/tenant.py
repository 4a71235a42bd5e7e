"""Tenant schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from eventsync.models.tenant import TenantStatus


class TenantCreate(BaseModel):
    """Schema for registering a tenant."""

    name: str = Field(..., min_length=1, max_length=255)
    api_key: str = Field(..., min_length=1, max_length=255)
    currency: str = Field("usd", min_length=3, max_length=10)


class TenantUpdate(BaseModel):
    """Schema for updating a tenant. Only fields that are set are written."""

    name: str | None = Field(None, min_length=1, max_length=255)
    api_key: str | None = Field(None, min_length=1, max_length=255)
    currency: str | None = Field(None, min_length=3, max_length=10)
    status: TenantStatus | None = None


class TenantResponse(BaseModel):
    """Schema for tenant responses. The API key is only ever shown masked."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    api_key_masked: str
    currency: str
    status: TenantStatus
    last_sync_at: datetime | None = None
    created_at: datetime
    event_count: int = 0


class TenantListResponse(BaseModel):
    """Schema for tenant list responses."""

    tenants: list[TenantResponse]
    total: int
