"""Shared fixtures for sync job tests."""

import uuid
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.models.tenant import Microsoft365Connection


@pytest.fixture
def mock_get_db_context(db_session):
    """Factory patching a sync module's get_db_context onto the test session."""
    @contextmanager
    def _context():
        yield db_session
        db_session.commit()

    patchers = []

    def _patch(module_path):
        patcher = patch(f"{module_path}.get_db_context", _context)
        patcher.start()
        patchers.append(patcher)
        return db_session

    yield _patch

    for patcher in patchers:
        patcher.stop()


@pytest.fixture
def add_connection(db_session):
    """Attach a Microsoft 365 connection to a tenant."""
    def _add(tenant):
        db_session.add(Microsoft365Connection(
            id=str(uuid.uuid4()),
            tenant_id=tenant.id,
            tenant_name=tenant.name,
            tenant_domain=f"{tenant.name.lower().replace(' ', '')}.onmicrosoft.com",
            client_id=str(uuid.uuid4()),
            client_secret="secret",
        ))
        db_session.commit()

    return _add


@pytest.fixture
def mock_graph_client():
    """Graph client whose latest secure score can be set per test."""
    client = MagicMock()
    client.get_latest_secure_score = AsyncMock(return_value={
        "currentScore": 45.5,
        "maxScore": 91,
    })
    return client
