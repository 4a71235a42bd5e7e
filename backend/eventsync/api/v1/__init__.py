"""API v1 router."""
from fastapi import APIRouter

from eventsync.api.v1.endpoints import sync, tenants

api_router = APIRouter()

# Include routers
api_router.include_router(tenants.router, prefix="/tenants", tags=["tenants"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
