"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import Settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.exceptions import DeliveryError  # noqa: E402
from app.models.user import User  # noqa: E402, F401
from app.repositories.users import CredentialStore  # noqa: E402
from app.services.auth import AuthService, get_auth_service  # noqa: E402
from app.services.clock import Clock  # noqa: E402
from app.services.email import EmailMessage  # noqa: E402

BASE_URL = "http://testserver"


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 15, 12, 0, 0)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingEmailSender:
    """Keeps sent messages in memory; can be switched to fail."""

    def __init__(self) -> None:
        self.outbox: list[EmailMessage] = []
        self.fail = False

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise DeliveryError("SMTP connection refused")
        self.outbox.append(message)

    def last_token(self) -> str:
        """Token from the link in the most recent message."""
        return self.outbox[-1].text.split("token=", 1)[1].split()[0]


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    """Settings tuned for fast tests."""
    settings = Settings()
    settings.JWT_SECRET_KEY = "test-secret-key"
    settings.JWT_EXPIRE_MINUTES = 60
    settings.BCRYPT_ROUNDS = 4
    settings.MIN_PASSWORD_LENGTH = 6
    settings.VERIFICATION_TOKEN_TTL_MINUTES = 24 * 60
    settings.RESET_TOKEN_TTL_MINUTES = 30
    return settings


@pytest.fixture(name="clock")
def clock_fixture() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture(name="auth_service")
def auth_service_fixture(settings: Settings, mailer: RecordingEmailSender, clock: FrozenClock) -> AuthService:
    return AuthService(settings, mailer, clock)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="store")
def store_fixture(db_session: Session) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, auth_service: AuthService):
    """Create a test client with overridden DB and auth dependencies and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="registered_user")
def registered_user_fixture(auth_service: AuthService, store: CredentialStore, mailer: RecordingEmailSender) -> dict:
    """An unverified user in the default tenant, plus its verification token."""
    user = auth_service.register(store, "default", "Test User", "test@example.com", "password123", BASE_URL)
    return {"id": user.id, "email": user.email, "password": "password123", "token": mailer.last_token()}


@pytest.fixture(name="verified_user")
def verified_user_fixture(auth_service: AuthService, store: CredentialStore, registered_user: dict) -> dict:
    """A verified user with a live session token."""
    auth_service.verify_email(store, registered_user["token"])
    result = auth_service.login(store, "default", registered_user["email"], registered_user["password"])
    return {**registered_user, "session": result.token}
