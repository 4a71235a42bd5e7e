"""Tenant (box office) API endpoints."""
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from eventsync.core.database import get_db
from eventsync.models.tenant import Tenant
from eventsync.schemas.tenant import TenantCreate, TenantListResponse, TenantResponse, TenantUpdate
from eventsync.services.tenant_service import TenantService, TenantValidationError, mask_key
from eventsync.services.ticket_api_client import ApiError, TicketApiClient

logger = structlog.get_logger()

router = APIRouter()


def get_client_factory():
    """Dependency returning the API client factory used for key validation."""
    return TicketApiClient


def _to_response(service: TenantService, tenant: Tenant) -> TenantResponse:
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        slug=tenant.slug,
        api_key_masked=mask_key(tenant.api_key or ""),
        currency=tenant.currency,
        status=tenant.status,
        last_sync_at=tenant.last_sync_at,
        created_at=tenant.created_at,
        event_count=service.event_count(tenant.id),
    )


@router.post("/", response_model=TenantResponse, status_code=201)
def create_tenant(
    tenant: TenantCreate,
    db: Annotated[Session, Depends(get_db)],
    client_factory=Depends(get_client_factory),
):
    """Register a box office. The API key is validated upstream before anything is stored."""
    logger.info("api_create_tenant", name=tenant.name)

    service = TenantService(db, client_factory=client_factory)
    try:
        created = service.add(tenant.name, tenant.api_key, tenant.currency)
    except TenantValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return _to_response(service, created)


@router.get("/", response_model=TenantListResponse)
def list_tenants(
    db: Annotated[Session, Depends(get_db)],
    status: str = Query("all", pattern="^(all|active|paused|inactive)$"),
):
    """List box offices."""
    service = TenantService(db)
    tenants = service.list_tenants(status)
    return TenantListResponse(tenants=[_to_response(service, t) for t in tenants], total=len(tenants))


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant(tenant_id: int, db: Annotated[Session, Depends(get_db)]):
    """Get a box office by ID."""
    service = TenantService(db)
    tenant = service.get(tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return _to_response(service, tenant)


@router.patch("/{tenant_id}", response_model=TenantResponse)
def update_tenant(
    tenant_id: int,
    tenant_data: TenantUpdate,
    db: Annotated[Session, Depends(get_db)],
    client_factory=Depends(get_client_factory),
):
    """Update a box office. A new API key is validated before it replaces the old one."""
    logger.info("api_update_tenant", tenant_id=tenant_id)

    service = TenantService(db, client_factory=client_factory)
    if not service.get(tenant_id):
        raise HTTPException(status_code=404, detail="Tenant not found")

    changes = tenant_data.model_dump(exclude_unset=True, exclude_none=True)
    if "api_key" in changes:
        try:
            client_factory(changes["api_key"]).overview()
        except ApiError as e:
            raise HTTPException(status_code=400, detail=f"API key validation failed: {e.message}") from e

    if changes:
        service.update(tenant_id, changes)

    return _to_response(service, service.get(tenant_id))


@router.delete("/{tenant_id}", status_code=204)
def delete_tenant(
    tenant_id: int,
    db: Annotated[Session, Depends(get_db)],
    delete_events: bool = Query(False, description="Permanently delete the tenant's events"),
):
    """Delete a box office, optionally with its events."""
    logger.info("api_delete_tenant", tenant_id=tenant_id, delete_events=delete_events)

    if not TenantService(db).delete(tenant_id, delete_events=delete_events):
        raise HTTPException(status_code=404, detail="Tenant not found")

    return None
