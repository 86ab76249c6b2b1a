"""Shared fixtures: an in-memory SQLite database and a TestClient bound to it."""

import os
import sys
import tempfile

# Must be set before planner.config is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="planner-storage-")
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["REQUIRE_EMAIL_CONFIRMATION"] = "false"
os.environ["DEFAULT_RATE_LIMIT"] = "20/minute"

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planner import models  # noqa: F401
from planner.database import Base, get_db
from planner.models.class_ import Class
from planner.models.user import Profile, User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

STRONG_PASSWORD = "Tr0ub4dor&X"


@pytest.fixture
def session_factory():
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from planner.main import app
    from planner.middleware.rate_limit import limiter
    from planner.services.captcha import captcha_store
    from planner.services.rate_limiter import rate_limiter

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    rate_limiter.clear()
    captcha_store.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_class(db, code: str = "3HT1", name: str = "3HT1") -> Class:
    cls = Class(code=code, name=name)
    db.add(cls)
    db.commit()
    db.refresh(cls)
    return cls


def make_member(db, class_id: str, email: str = "student@example.com", display_name: str = "Student") -> Profile:
    user = User(email=email)
    db.add(user)
    db.flush()
    profile = Profile(id=user.id, class_id=class_id, display_name=display_name)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def register(client, class_id: str, email: str = "student@example.com", password: str = STRONG_PASSWORD) -> dict:
    """Register through the API and return bearer headers."""
    resp = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "display_name": email.split("@")[0].title(),
        "class_id": class_id,
    })
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
