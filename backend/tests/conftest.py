"""Pytest configuration and shared fixtures."""

import os

from cryptography.fernet import Fernet

# Settings and the engine are built at import time, so configure first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test_jwt_secret_key_change_in_production_min_32_chars")
os.environ.setdefault("MFA_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ["SEED_DEMO_ACCOUNTS"] = "false"

from collections.abc import AsyncGenerator, Generator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from authgate.core.totp import TOTPEngine  # noqa: E402
from authgate.db.base import Base, import_models  # noqa: E402
from authgate.db.session import get_db  # noqa: E402
from authgate.main import app  # noqa: E402
from authgate.models.user import User  # noqa: E402
from authgate.models.workspace import Workspace  # noqa: E402
from authgate.repositories.mfa_store import SQLCredentialStore  # noqa: E402
from tests.helpers.seed import create_test_user, create_test_workspace  # noqa: E402

TEST_PASSWORD = "Test123!"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; the session is shared with the app under test."""
    from authgate.db.engine import engine

    import_models()
    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def workspace(db) -> Workspace:
    """Workspace that does not enforce MFA."""
    return create_test_workspace(db, name="Open Workspace")


@pytest.fixture
def enforcing_workspace(db) -> Workspace:
    """Workspace where every user must enroll a second factor."""
    return create_test_workspace(db, name="Strict Workspace", enforce_mfa=True)


@pytest.fixture
def test_user(db, workspace) -> User:
    """Password user in the open workspace."""
    return create_test_user(db, workspace, email="alice@acme.io", password=TEST_PASSWORD)


@pytest.fixture
def store(db) -> SQLCredentialStore:
    return SQLCredentialStore(db)


@pytest.fixture
def totp() -> TOTPEngine:
    return TOTPEngine(issuer="Docmost")


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database dependency override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close the session, it's managed by the db fixture

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def async_client(db: Session) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async client against the ASGI app with database dependency override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        try:
            yield ac
        finally:
            app.dependency_overrides.clear()
