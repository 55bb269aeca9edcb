"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - store / audit_log / service: function-scoped in-memory objects for unit tests
  - api_client: TestClient over the real FastAPI app with isolated stores

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

SECRET_KEY must be set before any core/api import so get_settings() does not
raise at startup.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api.main -- a missing key is fatal at startup.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.audit import LoginAuditLog
from auth.service import AuthService
from auth.store import UserStore

TEST_SECRET = os.environ["SECRET_KEY"]


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def audit_log(store: UserStore) -> LoginAuditLog:
    return LoginAuditLog(store.engine)


@pytest.fixture
def service(store: UserStore, audit_log: LoginAuditLog) -> AuthService:
    return AuthService(store=store, audit_log=audit_log, secret_key=TEST_SECRET)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore):
    """Return a lifespan that wires the test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.audit_log = LoginAuditLog(user_store.engine)
        app.state.auth_service = AuthService(
            store=user_store,
            audit_log=app.state.audit_log,
            secret_key=TEST_SECRET,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, LoginAuditLog], None, None]:
    """Yield (client, audit_log) for API integration tests.

    One client per test module; tests inside a module must use distinct
    usernames and emails because the database persists across them.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    user_store = UserStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, app.state.audit_log

    user_store.close()
