import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time: configure the environment before importing jobtrack.*
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["EMAIL_ENABLED"] = "false"

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobtrack.core import clock
from jobtrack.core import config as app_config
from jobtrack.core.base import Base
from jobtrack.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from jobtrack.models.user import User  # noqa: F401
from jobtrack.models.token import Token  # noqa: F401
from jobtrack.models.application import Application  # noqa: F401
from jobtrack.models.application_status import ApplicationStatus  # noqa: F401

from jobtrack.core.database import get_db
from jobtrack.dependencies.auth import get_current_user
from jobtrack.services import users as users_service

TEST_PASSWORD = "Correct-horse-42"


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # The in-memory DB outlives each test (StaticPool); reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def file_sessionmaker(tmp_path):
    """
    File-backed SQLite where every session gets its own connection, for tests
    that race real transactions against each other.
    """
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'jobtrack.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings (app_config.settings.*). Restore them
    after each test to avoid cross-test coupling.
    """
    keys = [
        "LOGIN_MAX_FAILED_ATTEMPTS",
        "LOGIN_LOCKOUT_MINUTES",
        "PASSWORD_MIN_LENGTH",
        "EMAIL_ENABLED",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


class Outbox:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []

    def record(self, kind: str):
        def _send(to_email: str, token: str) -> str:
            self.messages.append((kind, to_email, token))
            return "msg_test_123"

        return _send

    def last_token(self, kind: str, to_email: str | None = None) -> str:
        for k, email, token in reversed(self.messages):
            if k == kind and (to_email is None or email == to_email):
                return token
        raise AssertionError(f"no {kind} message sent")


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """
    Capture verification / reset mails instead of delivering them.
    """
    from jobtrack.routes import auth as auth_routes

    box = Outbox()
    monkeypatch.setattr(auth_routes, "send_verification_email", box.record("verify"))
    monkeypatch.setattr(auth_routes, "send_password_reset_email", box.record("reset"))
    return box


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def frozen_clock(monkeypatch):
    """
    Pin jobtrack.core.clock.utc_now; use .advance(minutes=...) to move time.
    """
    fc = FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))
    monkeypatch.setattr(clock, "utc_now", fc)
    return fc


@pytest.fixture()
def app(db_session):
    app_config.settings.JWT_SECRET = app_config.settings.JWT_SECRET or "test_jwt_secret"

    from jobtrack.main import app as fastapi_app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def make_user(db_session, email: str, *, first_name: str = "Test", last_name: str = "User", verified: bool = True, role: str = "User"):
    user = users_service.create_user(
        db_session,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
    )
    user.is_verified = verified
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def users(db_session):
    """
    Two distinct verified users for ownership / isolation tests.
    """
    alice = make_user(db_session, "alice@example.com", first_name="Alice", last_name="Anders")
    bob = make_user(db_session, "bob@example.com", first_name="Bob", last_name="Berg")
    return alice, bob


@pytest.fixture()
def admin(db_session):
    return make_user(db_session, "admin@example.com", first_name="Ada", last_name="Admin", role="Admin")


@pytest.fixture()
def anonymous_client(app):
    """
    Client without an authenticated user override (auth endpoints, bearer checks).
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def client(app, users):
    """
    Default client authenticated as alice.
    """
    alice, _ = users
    app.dependency_overrides[get_current_user] = lambda: alice
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def client_for(app):
    """
    Context manager to create a client authenticated as an arbitrary user.

    Usage:
        with client_for(user) as c:
            ...
    """

    @contextmanager
    def _client_for(user: User):
        app.dependency_overrides[get_current_user] = lambda: user
        with TestClient(app) as c:
            yield c
        app.dependency_overrides.pop(get_current_user, None)

    return _client_for
