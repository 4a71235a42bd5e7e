"""Test configuration and fixtures."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventsync.models import Base
from tests.fixtures.ticket_api_responses import FakeTicketApi


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads (TestClient runs handlers in a pool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Create a test database session."""
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    yield session
    session.close()


@pytest.fixture
def fake_api():
    """Fake upstream ticketing API."""
    return FakeTicketApi()


@pytest.fixture
def media_dir(tmp_path):
    """Directory for downloaded event images."""
    return tmp_path / "media"


@pytest.fixture
def client(db, fake_api):
    """Create test client bound to the test session and fake upstream API."""
    from fastapi.testclient import TestClient

    from eventsync.api.v1.endpoints.tenants import get_client_factory
    from eventsync.core.database import get_db
    from eventsync.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_client_factory] = lambda: fake_api.client_factory
    yield TestClient(app)
    app.dependency_overrides.clear()
