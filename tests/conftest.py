"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite has no JSONB; SQLAlchemy's JSON type handles the (de)serialization,
# we only need the DDL to say TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.pool import StaticPool

from gamify.config import GamifyConfig
from gamify.database.engine import init_db
from gamify.services.trigger_service import TriggerService

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all tables created and settings seeded.

    Uses StaticPool so every thread shares the same in-memory database
    (required by ``asyncio.to_thread`` in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def triggers(db_engine: Engine) -> TriggerService:
    return TriggerService(db_engine)


@pytest.fixture
def test_config() -> GamifyConfig:
    return GamifyConfig(service_name="gamify-test", api_port=8000)


@pytest.fixture
def client(db_engine: Engine, test_config: GamifyConfig):
    """TestClient bound to the in-memory engine (lifespan is not run)."""
    from fastapi.testclient import TestClient

    from gamify.api.deps import get_config, get_engine
    from gamify.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
