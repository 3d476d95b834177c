"""Pytest fixtures: throwaway SQLite database for fast, isolated tests."""
import os

# Must be set before launchpad.config is imported; the app's own engine is only
# used for startup table creation, tests get their own engine below.
os.environ["DATABASE_URL"] = "sqlite://"

from typing import Optional

import pytest
from fastapi import Depends, Header
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from fastapi.testclient import TestClient

from launchpad.auth import get_current_principal, load_principal
from launchpad.database import Base, get_db
from launchpad.errors import Unauthorized
from launchpad.main import app
from launchpad.services.notification_service import get_notifier

# Import all models so they register with Base.metadata
from launchpad.models.profile import Profile, Role         # noqa: F401
from launchpad.models.startup import Startup               # noqa: F401
from launchpad.models.audit_log import AuditLogEntry       # noqa: F401


class RecordingNotifier:
    """Notification sink double: keeps every attempt, can be told to fail."""

    def __init__(self):
        self.attempts = []
        self.sent = []
        self.fail = False

    def send(self, notification):
        self.attempts.append(notification)
        if self.fail:
            raise ConnectionError("SMTP relay unreachable")
        self.sent.append(notification)


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session, closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db_engine, notifier):
    """FastAPI TestClient with database, principal and notifier overridden.

    Requests authenticate with an ``X-Test-User: <profile id>`` header instead
    of a Supabase bearer token.
    """
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    def _override_principal(
        x_test_user: Optional[str] = Header(default=None, alias="X-Test-User"),
        db: Session = Depends(get_db),
    ):
        if not x_test_user:
            raise Unauthorized()
        return load_principal(db, x_test_user)

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_principal] = _override_principal
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def create_test_profile(db: Session, role: str = "user", name: str = "Test Founder") -> Profile:
    """Insert a profile row directly and return it."""
    profile = Profile(full_name=name, email=f"{name.lower().replace(' ', '.')}@example.com", role=role)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def auth_headers(user_id: str) -> dict:
    return {"X-Test-User": user_id}


def create_test_startup(client: TestClient, owner_id: str, name: str = "Test Startup", **fields) -> dict:
    """Helper: POST /api/startups and return response JSON."""
    resp = client.post("/api/startups/", json={"name": name, **fields}, headers=auth_headers(owner_id))
    assert resp.status_code == 201, resp.text
    return resp.json()


def insert_startup(db: Session, owner_id: str, name: str, slug: str, status: Optional[str] = "pending") -> Startup:
    """Insert a startup row directly, bypassing validation (legacy/corrupt data)."""
    startup = Startup(name=name, slug=slug, status=status, owner_id=owner_id, version=1)
    db.add(startup)
    db.commit()
    db.refresh(startup)
    return startup
