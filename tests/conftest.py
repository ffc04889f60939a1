"""
tests/conftest.py -- Shared fixtures for UserDesk tests.

This module provides:
  - engine / session_factory / db_session: an isolated in-memory SQLite database
  - storage: a fake profile image store recording uploads and deletes
  - reset_codes: a fresh one-time code store per test
  - client: TestClient with get_db, storage and code store overridden
  - make_user / user / admin: account factories
  - login: helper that logs a client in through POST /login
  - sent_codes: captures password reset codes instead of sending email

Design: StaticPool keeps a single connection so every session (fixtures and
request handlers running in the TestClient thread pool) sees the same
in-memory database. TestClient is used without a `with` block so the real
lifespan (migrations, seeding) never runs.

Environment variables must be set before any app import so the settings
singleton picks them up.
"""
import os

os.environ.setdefault("USERDESK_BCRYPT_ROUNDS", "4")
os.environ.setdefault("USERDESK_SEED_USER_ENABLED", "false")
os.environ["USERDESK_DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.rate_limit import limiter
from app.auth.codes import OneTimeCodeStore, get_reset_code_store
from app.auth.service import auth_service
from app.services.email_service import email_service
from app.services.storage import build_image_name, get_image_storage

DEFAULT_PASSWORD = "password123"


class FakeImageStorage:
    """Stands in for S3ImageStorage; keeps objects in a dict."""

    def __init__(self):
        self.objects = {}
        self.deleted = []

    def is_configured(self) -> bool:
        return True

    def upload_image(self, data, original_filename, content_type):
        image_name = build_image_name(original_filename)
        self.objects[image_name] = (data, content_type)
        return image_name

    def delete_image(self, image_name):
        self.deleted.append(image_name)
        return self.objects.pop(image_name, None) is not None


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def storage():
    return FakeImageStorage()


@pytest.fixture
def reset_codes():
    return OneTimeCodeStore(ttl_seconds=600, max_attempts=5)


@pytest.fixture
def client(session_factory, storage, reset_codes):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: storage
    app.dependency_overrides[get_reset_code_store] = lambda: reset_codes
    limiter.enabled = False

    yield TestClient(app)

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(
        email=None,
        password=DEFAULT_PASSWORD,
        first_name="Alice",
        last_name="Smith",
        role="user",
        status="active",
        location="Berlin",
        phone_no="5550100",
    ):
        counter["n"] += 1
        return auth_service.create_user(
            db_session,
            first_name=first_name,
            last_name=last_name,
            email=email or f"user{counter['n']}@example.com",
            password=password,
            phone_no=phone_no,
            location=location,
            role=role,
            status=status,
        )

    return _make


@pytest.fixture
def user(make_user):
    return make_user(email="alice@example.com", first_name="Alice", last_name="Smith")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", first_name="Ada", last_name="Admin", role="admin")


@pytest.fixture
def login():
    def _login(client, email, password=DEFAULT_PASSWORD, **kwargs):
        resp = client.post("/login", json={"email": email, "password": password}, **kwargs)
        assert resp.status_code == 200, resp.text
        return resp

    return _login


@pytest.fixture
def sent_codes(monkeypatch):
    sent = []

    async def fake_send(to_email, code, user_name=""):
        sent.append((to_email, code))
        return True

    monkeypatch.setattr(email_service, "is_configured", lambda: True)
    monkeypatch.setattr(email_service, "send_password_reset_code", fake_send)
    return sent
