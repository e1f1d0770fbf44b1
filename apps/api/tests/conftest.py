"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time; point everything at SQLite first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SIGNING_KEY_PROVIDER", "simulated")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ponto_api.auth.api_key import build_api_key  # noqa: E402
from ponto_api.db.base import Base  # noqa: E402
from ponto_api.ledger.signer import SimulatedKeySigner  # noqa: E402
from ponto_api.ledger.types import AuditContext, TimecardEntryData  # noqa: E402
from ponto_api.models import DigitalSignatureKey, Tenant  # noqa: E402

TEST_API_KEY = "test-api-key-0123456789"
ADMIN_API_KEY = "admin-api-key-0123456789"


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_tenant(db: Session) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(label="test-tenant", status="active")
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def other_tenant(db: Session) -> Tenant:
    tenant = Tenant(label="other-tenant", status="active")
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def signing_key(db: Session, test_tenant: Tenant) -> DigitalSignatureKey:
    """Active, unexpired signing key for the test tenant."""
    key = DigitalSignatureKey(
        tenant_id=test_tenant.id,
        key_name="test-key",
        key_algorithm="RSA-2048",
        public_key="-----BEGIN PUBLIC KEY-----\nTEST\n-----END PUBLIC KEY-----",
        is_active=True,
        expires_at=datetime.utcnow() + timedelta(days=365),
    )
    db.add(key)
    db.commit()
    return key


@pytest.fixture
def signer(db: Session) -> SimulatedKeySigner:
    return SimulatedKeySigner(db)


@pytest.fixture
def audit_context() -> AuditContext:
    return AuditContext(performed_by="manager-1", ip_address="10.0.0.1", user_agent="pytest")


@pytest.fixture
def make_entry(test_tenant: Tenant):
    """Factory for TimecardEntryData on the test tenant."""

    def _make(user_id: str = "employee-1", total_hours: str = "8.00", **kwargs) -> TimecardEntryData:
        check_in = kwargs.pop("check_in", datetime(2024, 3, 4, 8, 0, 0))
        return TimecardEntryData(
            tenant_id=kwargs.pop("tenant_id", test_tenant.id),
            user_id=user_id,
            check_in=check_in,
            check_out=kwargs.pop("check_out", check_in + timedelta(hours=9)),
            total_hours=total_hours,
            location=kwargs.pop("location", "Matriz"),
            **kwargs,
        )

    return _make


@pytest.fixture
def api_keys(db: Session, test_tenant: Tenant):
    """A regular API key and an admin one for the test tenant."""
    db.add(build_api_key(test_tenant.id, TEST_API_KEY, ["timecard", "compliance"], label="test-key"))
    db.add(
        build_api_key(
            test_tenant.id, ADMIN_API_KEY, ["timecard", "compliance", "compliance:admin"], label="admin-key"
        )
    )
    db.commit()
    return {"regular": TEST_API_KEY, "admin": ADMIN_API_KEY}


@pytest.fixture
def client(session_factory, api_keys, monkeypatch):
    """Test client bound to the test database.

    Each request gets its own session; fixtures must commit before calling it.
    """
    from ponto_api.db.session import get_db
    from ponto_api.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr("ponto_api.middleware.auth.SessionLocal", session_factory)
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"x-api-key": TEST_API_KEY, "x-user-id": "manager-1"}


@pytest.fixture
def admin_headers():
    return {"x-api-key": ADMIN_API_KEY, "x-user-id": "admin-1"}
