"""
Main FastAPI application entry point.
"""
import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from eventsync import __version__
from eventsync.api.v1 import api_router
from eventsync.core.config import settings
from eventsync.core.database import init_db
from eventsync.core.logging import configure_logging
from eventsync.core.metrics import get_metrics, record_api_request

configure_logging()

logger = structlog.get_logger()

app = FastAPI(
    title="Event Sync API",
    description="Multi-tenant box office event synchronization",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request metrics middleware
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Middleware to track API request metrics."""
    # Skip metrics for the /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    record_api_request(
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
        duration=duration
    )

    return response


# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "eventsync-api"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type="text/plain; version=0.0.4; charset=utf-8")


@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info("application_starting", version=__version__)
    init_db()
