"""Database connection and session management."""

from collections.abc import Generator

import structlog
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from eventsync.core.config import settings

logger = structlog.get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Celery workers and the API share one SQLite file in local setups.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create tenant, event, sync-log and sync-state tables that do not exist yet."""
    from eventsync.models import Base

    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_created", tables=sorted(Base.metadata.tables))


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
