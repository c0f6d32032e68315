"""Account lifecycle store.

Reads and writes the lifecycle columns of the ``users`` table
(``status``, ``deletion_scheduled_at``, ``last_reminder_days``) and computes
the grace-period arithmetic shared by the admin endpoints and the cleanup
scheduler.

Lifecycle: active -> scheduled for deletion -> (restored to active |
permanently deleted once the grace period has elapsed).
"""

import logging
import math
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from wireline.core.security import hash_password
from wireline.models.user import AccountStatus, User, UserRole

logger = logging.getLogger(__name__)

GRACE_PERIOD_DAYS = 30
REMINDER_THRESHOLDS = (7, 3, 1)

_ONE_DAY_SECONDS = timedelta(days=1).total_seconds()


class AccountExistsError(Exception):
    """Raised when creating an account whose username is already taken."""


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def final_deletion_date(scheduled_at: datetime) -> datetime:
    """Date on which a scheduled account becomes due for permanent removal."""
    return _as_utc(scheduled_at) + timedelta(days=GRACE_PERIOD_DAYS)


def days_until_deletion(scheduled_at: datetime, now: datetime | None = None) -> int:
    """Whole days left in the grace period, rounded up.

    Zero or negative means the account is due for permanent deletion.
    """
    now = _as_utc(now) if now else datetime.now(UTC)
    remaining = (final_deletion_date(scheduled_at) - now).total_seconds()
    return math.ceil(remaining / _ONE_DAY_SECONDS)


def get_account(db: Session, account_id: UUID) -> User | None:
    return db.get(User, account_id)


def get_account_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalars().first()


def get_account_by_email(db: Session, email: str) -> User | None:
    """Newest account registered with an address (addresses are not unique)."""
    stmt = select(User).where(User.email == email).order_by(User.created_at.desc())
    return db.execute(stmt).scalars().first()


def list_accounts(db: Session) -> list[User]:
    """All accounts, newest first."""
    stmt = select(User).order_by(User.created_at.desc())
    return list(db.execute(stmt).scalars().all())


def list_scheduled_for_deletion(db: Session) -> list[User]:
    """Accounts in the deletion pipeline, oldest schedule first."""
    stmt = (
        select(User)
        .where(User.deletion_scheduled_at.is_not(None))
        .order_by(User.deletion_scheduled_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def create_account(
    db: Session,
    username: str,
    password: str,
    full_name: str,
    email: str,
    role: UserRole = UserRole.USER,
) -> User:
    """Create an active account with a bcrypt-hashed password.

    Raises:
        AccountExistsError: If the username is already registered.
    """
    if get_account_by_username(db, username):
        raise AccountExistsError(f"Username already exists: {username}")

    user = User(
        username=username,
        password_hash=hash_password(password),
        full_name=full_name,
        email=email,
        role=role,
        status=AccountStatus.ACTIVE,
    )
    db.add(user)
    db.flush()
    logger.info(f"Created account {user.username} (role: {role.value})")
    return user


def schedule_deletion(db: Session, account: User, at: datetime | None = None) -> datetime:
    """Put an account into the deletion pipeline and deactivate it.

    Returns:
        The timestamp stored in ``deletion_scheduled_at``.
    """
    scheduled_at = at or datetime.now(UTC)
    account.deletion_scheduled_at = scheduled_at
    account.status = AccountStatus.INACTIVE
    account.last_reminder_days = None
    return scheduled_at


def cancel_deletion(db: Session, account: User) -> None:
    """Take an account out of the deletion pipeline and reactivate it."""
    account.deletion_scheduled_at = None
    account.status = AccountStatus.ACTIVE
    account.last_reminder_days = None


def update_password(db: Session, account: User, new_password: str) -> None:
    account.password_hash = hash_password(new_password)
    logger.info(f"Password changed for {account.username}")


def mark_email_verified(db: Session, account: User, at: datetime | None = None) -> None:
    account.email_verified_at = at or datetime.now(UTC)


def claim_reminder(db: Session, account_id: UUID, days: int) -> bool:
    """Mark a reminder threshold as taken before the email goes out.

    A single conditional UPDATE, so only one scan (in any process) wins a
    given threshold for an account.

    Returns:
        True if this caller claimed the threshold.
    """
    stmt = (
        update(User)
        .where(User.id == account_id)
        .where(User.deletion_scheduled_at.is_not(None))
        .where(
            or_(User.last_reminder_days.is_(None), User.last_reminder_days != days)
        )
        .values(last_reminder_days=days)
    )
    return bool(db.execute(stmt).rowcount)


def release_reminder(
    db: Session, account_id: UUID, days: int, previous: int | None
) -> None:
    """Undo a claim whose email was not delivered, so the next scan retries."""
    stmt = (
        update(User)
        .where(User.id == account_id)
        .where(User.last_reminder_days == days)
        .values(last_reminder_days=previous)
    )
    db.execute(stmt)


def permanently_delete(db: Session, account_id: UUID) -> bool:
    """Delete the account row.

    Returns:
        True if a row was removed.
    """
    result = db.execute(delete(User).where(User.id == account_id))
    return bool(result.rowcount)
