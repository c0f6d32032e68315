"""Scheduled account deletion: the cleanup scan and its in-process timer.

A scan visits every account with a pending deletion and takes exactly one
action per account:

- grace period elapsed (``days_until_deletion <= 0``): delete the row
- exactly 7, 3 or 1 days remaining: email a reminder
- otherwise: nothing

Per-account failures are collected into the scan result and never stop the
scan. The same scan runs from the timer owned by :class:`CleanupScheduler`,
from the admin "run cleanup now" endpoint and from the Celery task in
``wireline.tasks.cleanup``.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from wireline.core.logging import generate_request_id, set_scan_id
from wireline.models.activity import ActivityAction
from wireline.models.user import User
from wireline.services.accounts import (
    GRACE_PERIOD_DAYS,
    REMINDER_THRESHOLDS,
    claim_reminder,
    days_until_deletion,
    list_scheduled_for_deletion,
    permanently_delete,
    release_reminder,
)
from wireline.services.activity import log_system_activity
from wireline.services.email import EmailService

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60


@dataclass
class CleanupResult:
    """Summary of one scan."""

    deleted_users: int = 0
    reminders_sent: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SchedulerStatus:
    is_running: bool
    # Approximation: recomputed as now + interval on every call
    next_run_time: datetime | None


@dataclass(frozen=True)
class _ScheduledAccount:
    """Column values read once when a scan lists its accounts.

    The scan commits after every account and rows may be deleted by another
    process meanwhile, so nothing after the listing touches ORM instances.
    """

    id: UUID
    username: str
    email: str
    full_name: str
    deletion_scheduled_at: datetime
    last_reminder_days: int | None

    @classmethod
    def from_user(cls, user: User) -> "_ScheduledAccount":
        assert user.deletion_scheduled_at is not None
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            deletion_scheduled_at=user.deletion_scheduled_at,
            last_reminder_days=user.last_reminder_days,
        )


def _delete_account(db: Session, account: _ScheduledAccount, result: CleanupResult) -> None:
    try:
        removed = permanently_delete(db, account.id)
        if not removed:
            # Deleted elsewhere (another worker's scan) since the listing
            db.rollback()
            logger.info(f"User {account.username} already removed, skipping")
            return
        log_system_activity(
            db,
            ActivityAction.SYSTEM_PERMANENT_DELETION,
            f"User {account.username} permanently deleted after "
            f"{GRACE_PERIOD_DAYS}-day grace period",
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete user {account.username}: {e}")
        result.errors.append(f"Failed to delete user {account.username}: {e}")
        return

    result.deleted_users += 1
    logger.info(f"Permanently deleted user: {account.username} (ID: {account.id})")


def _send_reminder(
    db: Session,
    notifier: EmailService,
    account: _ScheduledAccount,
    days_left: int,
    result: CleanupResult,
) -> None:
    if account.last_reminder_days == days_left:
        logger.debug(f"{days_left}-day reminder already sent to {account.email}, skipping")
        return

    # Claim first: a concurrent scan that loses the claim sends nothing
    if not claim_reminder(db, account.id, days_left):
        db.rollback()
        logger.debug(f"{days_left}-day reminder for {account.email} claimed elsewhere")
        return
    db.commit()

    notification = notifier.send_deletion_reminder(account.email, account.full_name, days_left)
    if not notification.delivered:
        release_reminder(db, account.id, days_left, account.last_reminder_days)
        db.commit()
        result.errors.append(
            f"Failed to send reminder to {account.email}: {notification.error}"
        )
        return

    result.reminders_sent += 1
    logger.info(f"Sent {days_left}-day reminder to: {account.email}")

    try:
        log_system_activity(
            db,
            ActivityAction.SYSTEM_DELETION_REMINDER,
            f"Sent {days_left}-day deletion reminder to {account.email}",
            user_id=account.id,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to record reminder for {account.username}: {e}")
        result.errors.append(f"Failed to record reminder for {account.username}: {e}")


def _process_account(
    db: Session,
    notifier: EmailService,
    account: _ScheduledAccount,
    now: datetime,
    result: CleanupResult,
) -> None:
    days_left = days_until_deletion(account.deletion_scheduled_at, now)

    if days_left <= 0:
        _delete_account(db, account, result)
    elif days_left in REMINDER_THRESHOLDS:
        _send_reminder(db, notifier, account, days_left, result)


def run_cleanup_scan(
    db: Session, notifier: EmailService, now: datetime | None = None
) -> CleanupResult:
    """Run one scan over all accounts scheduled for deletion.

    Never raises: a failure to list accounts ends the scan early with a
    ``Cleanup error`` entry, per-account failures are recorded and skipped.
    """
    result = CleanupResult()
    now = now or datetime.now(UTC)

    logger.info("Running user cleanup task...")
    try:
        accounts = [
            _ScheduledAccount.from_user(user)
            for user in list_scheduled_for_deletion(db)
            if user.deletion_scheduled_at is not None
        ]
    except Exception as e:
        db.rollback()
        logger.error(f"Error during user cleanup: {e}")
        result.errors.append(f"Cleanup error: {e}")
        return result

    if not accounts:
        logger.info("No users scheduled for deletion")
        return result

    for account in accounts:
        try:
            _process_account(db, notifier, account, now, result)
        except Exception as e:
            db.rollback()
            logger.error(f"Unexpected error processing user {account.username}: {e}")
            result.errors.append(f"Failed to process user {account.username}: {e}")

    logger.info(
        f"Cleanup completed. Deleted: {result.deleted_users} users, "
        f"Reminders sent: {result.reminders_sent}, Errors: {len(result.errors)}"
    )
    return result


class CleanupScheduler:
    """Owns the periodic cleanup timer for one process.

    Created once at application startup and handed to the admin endpoints.
    Within this process the timer scan and a manual scan are serialized on
    a lock, so a manual run issued mid-scan waits and then sees fresh data.
    Scans in other processes (more API workers, the Celery task) can still
    overlap; reminders are claimed with a conditional UPDATE and deletes of
    an already removed row are skipped, so overlap never double-sends.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notifier: EmailService,
        interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
    ):
        self._session_factory = session_factory
        self._notifier = notifier
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._is_running = False
        self._scan_lock = threading.Lock()

    @property
    def interval(self) -> timedelta:
        return timedelta(seconds=self._interval_seconds)

    def start(self) -> None:
        """Scan now, then every interval. No-op if already running.

        Must be called from within a running event loop.
        """
        if self._is_running:
            logger.info("User cleanup service is already running")
            return

        logger.info("Starting user cleanup service...")
        self._is_running = True
        self._task = asyncio.get_running_loop().create_task(
            self._run_periodically(), name="account-cleanup"
        )

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._is_running = False
        logger.info("User cleanup service stopped")

    def get_status(self) -> SchedulerStatus:
        next_run_time = datetime.now(UTC) + self.interval if self._task is not None else None
        return SchedulerStatus(is_running=self._is_running, next_run_time=next_run_time)

    def run_manual_cleanup(self) -> CleanupResult:
        """Run one scan immediately without touching the timer."""
        return self._scan()

    def _scan(self) -> CleanupResult:
        set_scan_id(generate_request_id())
        with self._scan_lock:
            db = self._session_factory()
            try:
                return run_cleanup_scan(db, self._notifier)
            finally:
                db.close()

    async def _run_periodically(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self._scan)
            except Exception:
                # Keep the timer armed, the next interval retries
                logger.exception("Error during user cleanup")
            await asyncio.sleep(self._interval_seconds)
