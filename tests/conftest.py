"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files; pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise, connections

from app.deps import (
    can_read_alerts,
    can_run_maintenance,
    can_write_alerts,
    get_current_user,
)
from app.routers import alerts, events, maintenance

from .factories import make_admin, make_user

# ---------------------------------------------------------------------------
# Infrastructure stand-ins: no real redis, in-memory sqlite for the store
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Empty cache: every lookup misses, every write succeeds."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=0)
    monkeypatch.setattr("app.cache._redis", mock)
    return mock


@pytest.fixture()
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["app.models"]})
    await Tortoise.generate_schemas()
    yield
    await connections.close_all()


# ---------------------------------------------------------------------------
# App builder, used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(current_user=None) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally. The trigger token check is left real;
    TRIGGER_TOKEN is empty in tests unless a test sets it.
    """
    app = FastAPI()
    app.include_router(events.router)
    app.include_router(alerts.router)
    app.include_router(maintenance.router)

    if current_user is not None:

        async def _user():
            return current_user

        for dep in (
            can_read_alerts,
            can_write_alerts,
            can_run_maintenance,
            get_current_user,
        ):
            app.dependency_overrides[dep] = _user

    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def trigger_client():
    return TestClient(build_app(), raise_server_exceptions=False)


@pytest.fixture()
def user_client():
    return TestClient(build_app(make_user()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    Bare app with NO dependency overrides.
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    return build_app()
