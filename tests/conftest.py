"""Pytest configuration and fixtures."""

import os
import re
from datetime import UTC, datetime, timedelta

# Must be set before authservice reads its cached settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from authservice.api.dependencies import get_email_sender  # noqa: E402
from authservice.config import get_settings  # noqa: E402
from authservice.database import Base, get_db  # noqa: E402
from authservice.errors import DeliveryError  # noqa: E402
from authservice.main import app  # noqa: E402
from authservice.services.auth import AuthService  # noqa: E402
from authservice.services.email import EmailMessage  # noqa: E402
from authservice.services.users import UserRepository  # noqa: E402

PASSWORD = "Abc12345!"

SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]
connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class AuthHeaders(dict):
    """Dict subclass that also stores the user's id and email."""

    def __init__(self, *args, user_id: str | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class RecordingEmailSender:
    """Email sender that keeps messages in memory instead of sending them."""

    def __init__(self):
        self.messages: list[EmailMessage] = []
        self.fail = False

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise DeliveryError()
        self.messages.append(message)

    def latest_code(self, email: str) -> str:
        """Return the code from the most recent email sent to this address."""
        for message in reversed(self.messages):
            if message.to == email:
                match = re.search(r"verification code is: (\d+)", message.body)
                assert match, f"No code in email body: {message.body!r}"
                return match.group(1)
        raise AssertionError(f"No email sent to {email}")


class FakeClock:
    """Controllable time source."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def settings():
    """Settings the app under test runs with."""
    return get_settings()


@pytest.fixture
def outbox():
    """Captured outbound emails."""
    return RecordingEmailSender()


@pytest.fixture
def clock():
    """Fake clock starting at the current time."""
    return FakeClock()


@pytest.fixture
def auth_service(db, settings, outbox, clock):
    """Auth service wired to the test database, captured email and fake clock."""
    return AuthService(UserRepository(db), settings, outbox, clock=clock)


@pytest.fixture(scope="function")
def client(db, outbox):
    """Create a test client with database and email overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: outbox
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_email_sender, None)


@pytest.fixture
def auth_headers(client, outbox):
    """Sign up and verify a user, then return auth headers with user info."""
    email = "test@example.com"
    response = client.post(
        "/api/v1/users/signup",
        json={
            "email": email,
            "password": PASSWORD,
            "passwordConfirm": PASSWORD,
            "name": "Test User",
        },
    )
    assert response.status_code == 201

    response = client.post(
        "/api/v1/users/verify",
        json={"email": email, "otp": outbox.latest_code(email)},
    )
    assert response.status_code == 201
    data = response.json()
    token = data["access_token"]
    user_id = data["user"]["id"]

    # Bearer header only; keep the cookie from masking header behaviour
    client.cookies.clear()

    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id, email=email)
