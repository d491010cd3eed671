"""Shared fixtures for API and service tests."""

import os

# Must be set before the app modules read settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCORES_CRON_SECRET"] = "test-cron-secret"
os.environ["SMTP_HOST"] = ""

import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.auth import User, get_current_user
from app.core.database import Base, get_db


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def admin_user():
    """Return a test user with admin role for authentication."""
    return User(
        id="test-admin-123",
        email="admin@example.com",
        name="Test Admin",
        roles=["admin"],
        tenant_ids=[],
        is_active=True,
    )


@pytest.fixture
def current_user(admin_user):
    """The user the ``client`` fixture authenticates as; override per test module."""
    return admin_user


@pytest.fixture
def no_rate_limit(monkeypatch):
    """Bypass rate limiting for tests."""
    from app.core.rate_limit import RateLimiter

    async def mock_check_rate_limit(*args, **kwargs):
        pass

    monkeypatch.setattr(RateLimiter, "check_rate_limit", mock_check_rate_limit)


@pytest.fixture
def client(db_session, current_user, no_rate_limit):
    """Create a test client with the database and authentication overridden."""
    from fastapi.testclient import TestClient

    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def anon_client(db_session, no_rate_limit):
    """Test client with no authentication override."""
    from fastapi.testclient import TestClient

    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_tenant(db_session):
    """Factory inserting a tenant row."""
    def _make(name="Contoso", tenant_id=None, **kwargs):
        tenant = models.Tenant(
            id=str(uuid.uuid4()),
            name=name,
            tenant_id=tenant_id or str(uuid.uuid4()),
            **kwargs,
        )
        db_session.add(tenant)
        db_session.commit()
        db_session.refresh(tenant)
        return tenant

    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant()


@pytest.fixture
def connected_tenant(db_session, tenant):
    """Tenant with a Microsoft 365 connection."""
    db_session.add(models.Microsoft365Connection(
        id=str(uuid.uuid4()),
        tenant_id=tenant.id,
        tenant_name="Contoso",
        tenant_domain="contoso.onmicrosoft.com",
        client_id=str(uuid.uuid4()),
        client_secret="super-secret",
    ))
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def analyst_user(tenant):
    """Non-admin analyst scoped to the default tenant."""
    return User(
        id="test-analyst-456",
        email="analyst@example.com",
        name="Test Analyst",
        roles=["analyst"],
        tenant_ids=[tenant.id],
        is_active=True,
    )


@pytest.fixture
def as_user(client):
    """Switch the user the ``client`` fixture is authenticated as."""
    from app.main import app

    def _as(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return client

    return _as
