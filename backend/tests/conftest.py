"""Pytest configuration and fixtures."""

import os

# Set environment before any wireline import: skips production secrets
# validation and keeps tests off Postgres, Redis and SMTP
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CLEANUP_SCHEDULER_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

from collections.abc import Callable, Generator  # noqa: E402
from datetime import datetime  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from wireline.core.deps import get_db, get_email_service  # noqa: E402
from wireline.core.security import create_session_token, hash_password  # noqa: E402
from wireline.main import app  # noqa: E402
from wireline.models import AccountStatus, Base, User, UserRole  # noqa: E402
from wireline.services.cleanup import CleanupScheduler  # noqa: E402
from wireline.services.email import (  # noqa: E402
    EmailService,
    NotificationKind,
    NotificationResult,
)

# Hashing is slow; every fixture user shares this password
TEST_PASSWORD = "correct-horse-battery"
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite database shared by every session in a test."""
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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier() -> MagicMock:
    """Email service double that reports every message as delivered."""
    service = MagicMock(spec=EmailService)
    service.send_deletion_warning.side_effect = lambda recipient, *args: NotificationResult(
        NotificationKind.DELETION_WARNING, recipient, delivered=True
    )
    service.send_deletion_reminder.side_effect = lambda recipient, *args: NotificationResult(
        NotificationKind.DELETION_REMINDER, recipient, delivered=True
    )
    service.send_account_restored.side_effect = lambda recipient, *args: NotificationResult(
        NotificationKind.ACCOUNT_RESTORED, recipient, delivered=True
    )
    service.send_otp.side_effect = lambda recipient, name, code, purpose: NotificationResult(
        NotificationKind(purpose.value), recipient, delivered=True
    )
    service.send_email_verified.side_effect = lambda recipient, *args: NotificationResult(
        NotificationKind.EMAIL_VERIFIED, recipient, delivered=True
    )
    return service


@pytest.fixture
def scheduler(session_factory: sessionmaker[Session], notifier: MagicMock) -> CleanupScheduler:
    return CleanupScheduler(session_factory, notifier)


@pytest.fixture
def client(
    session_factory: sessionmaker[Session],
    scheduler: CleanupScheduler,
    notifier: MagicMock,
) -> Generator[TestClient, None, None]:
    """TestClient wired to the in-memory database, scheduler and email double."""
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: notifier
    app.state.cleanup_scheduler = scheduler
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        del app.state.cleanup_scheduler


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Insert and commit a user; keyword arguments override the defaults."""
    counter = 0

    def _make_user(
        username: str | None = None,
        role: UserRole = UserRole.USER,
        deletion_scheduled_at: datetime | None = None,
        **fields,
    ) -> User:
        nonlocal counter
        counter += 1
        username = username or f"user{counter}"
        user = User(
            username=username,
            password_hash=_TEST_PASSWORD_HASH,
            full_name=fields.pop("full_name", f"Test User {counter}"),
            email=fields.pop("email", f"{username}@example.com"),
            role=role,
            status=AccountStatus.INACTIVE if deletion_scheduled_at else AccountStatus.ACTIVE,
            deletion_scheduled_at=deletion_scheduled_at,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying a session token for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        token = create_session_token(str(user.id), role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def admin_user(make_user: Callable[..., User]) -> User:
    return make_user("admin", role=UserRole.ADMIN, full_name="Site Admin")


@pytest.fixture
def regular_user(make_user: Callable[..., User]) -> User:
    return make_user("operator", full_name="Field Operator")
