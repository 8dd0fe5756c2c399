"""Shared fixtures: in-memory database, API client and a stubbed mailer."""

import os

os.environ.setdefault("SECRET_KEY", "test-access-secret")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SMTP_SERVER", "localhost")
os.environ.setdefault("SMTP_USER", "no-reply@example.com")
os.environ.setdefault("SMTP_PASSWORD", "secret")
os.environ["DELETION_WORKER_ENABLED"] = "false"
os.environ["ALLOWED_HOSTS"] = '["*"]'

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from account_api.core.security import get_password_hash
from account_api.database import Base, get_db
from account_api.main import app
from account_api.models import User

PASSWORD = "longenough1"


@pytest.fixture
def session_maker():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_maker):
    session = session_maker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def override_db(session_maker):
    def override_get_db():
        session = session_maker()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_db):
    """Client on https so the secure session cookies round-trip."""
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client


@pytest.fixture
def unsafe_client(override_db):
    """Client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, base_url="https://testserver", raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def mailer():
    with patch("account_api.routers.auth.send_mailer") as auth_mailer, \
            patch("account_api.routers.users.send_mailer") as users_mailer:
        yield {"auth": auth_mailer, "users": users_mailer}


def registration_payload(**overrides):
    payload = {
        "username": "alice",
        "firstName": "Alice",
        "lastName": "Smith",
        "phoneNumber": "+15550100",
        "email": "a@x.com",
        "password": PASSWORD,
    }
    payload.update(overrides)
    return payload


def create_user(db, verified=True, email="v@x.com", username="verified", password=PASSWORD):
    user = User(
        username=username,
        first_name="Vera",
        last_name="Fied",
        phone_number="+15550101",
        email=email,
        password=get_password_hash(password),
        is_verified=verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def verified_user(db):
    return create_user(db)


@pytest.fixture
def unverified_user(db):
    return create_user(db, verified=False, email="u@x.com", username="unverified")
