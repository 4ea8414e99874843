import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EMAIL_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import jobtracker.models  # noqa: F401
from jobtracker.core.rate_limiter import rate_limiter
from jobtracker.database import Base, get_db
from jobtracker.dependencies import get_current_user, get_current_user_full_access
from jobtracker.main import app

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class StubUser:
    id: str = "user-1"
    email: str = "user@example.com"
    first_name: str = "Asha"
    last_name: str = "Rao"
    phone: str | None = None
    headline: str | None = None
    summary: str | None = None
    address: dict | None = None
    social_links: dict | None = None
    skills: list = field(default_factory=list)
    experience: list = field(default_factory=list)
    education: list = field(default_factory=list)
    certifications: list = field(default_factory=list)
    preferences: dict = field(default_factory=lambda: {"email_notifications": True})
    account_status: str = "Active"
    subscription_type: str = "Free"
    subscription_expires: datetime | None = None
    last_login_at: datetime | None = None
    login_count: int = 0
    integrations: dict = field(default_factory=dict)
    password_hash: str = "hashed-password"
    temp_password_hash: str | None = None
    temp_password_expires_at: datetime | None = None
    created_at: datetime | None = None


@pytest.fixture
def stub_user() -> StubUser:
    return StubUser()


@pytest.fixture
def client(stub_user: StubUser):
    def _db_override():
        yield object()

    rate_limiter.reset()
    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: stub_user
    app.dependency_overrides[get_current_user_full_access] = lambda: stub_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
