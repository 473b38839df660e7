"""
Configuration partagée pour tous les tests.

Deux styles de tests :
- `client` : get_db remplacé par un MagicMock et contexte d'appel injecté (tests de routers)
- `db_session` / `api` : base SQLite en mémoire construite depuis Base.metadata
  (tests de services, d'isolation entre tenants et de bout en bout)
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import uuid
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import schoolconnect.models  # noqa: F401
from schoolconnect.config import settings
from schoolconnect.database import Base, get_db
from schoolconnect.dependencies import get_request_context
from schoolconnect.main import app
from schoolconnect.routers import ws
from schoolconnect.schemas.auth import RequestContext


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """bcrypt au coût minimal et aucun scheduler pendant les tests."""
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    monkeypatch.setattr(settings, "SMTP_ENABLED", False)


# ----------------------------------------------------------------
# Tests de routers : BDD mockée
# ----------------------------------------------------------------

@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def as_role(mock_db):
    """
    Injecte un contexte authentifié pour le rôle donné.
    Usage : ctx = as_role("admin")
    """
    def _as_role(role: str) -> RequestContext:
        ctx = RequestContext(tenant_id=uuid.uuid4(), user_id=uuid.uuid4(), role=role)
        app.dependency_overrides[get_request_context] = lambda: ctx
        return ctx
    return _as_role


@pytest.fixture
def client(mock_db):
    """Client HTTP de test avec la BDD mockée."""
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ----------------------------------------------------------------
# Tests de services : SQLite en mémoire
# ----------------------------------------------------------------

@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def api(session_factory, monkeypatch):
    """Client HTTP de bout en bout sur la base SQLite (une session par requête)."""
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    monkeypatch.setattr(ws, "session_factory", session_factory)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
