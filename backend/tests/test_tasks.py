"""Tests for the Celery entry points: deletion scan and expired code purge."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from celery.schedules import crontab
from sqlalchemy import select

from wireline.core.celery_app import celery_app
from wireline.models import OtpCode, OtpPurpose, User
from wireline.services.otp import create_otp_code


class TestProcessScheduledDeletions:
    def test_runs_scan_and_returns_counts(self, session_factory, notifier, make_user, db_session):
        expired = make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=31))
        expired_id = expired.id
        make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=23))

        from wireline.tasks.cleanup import process_scheduled_deletions

        with (
            patch("wireline.tasks.cleanup.SessionLocal", session_factory),
            patch("wireline.tasks.cleanup.EmailService", return_value=notifier),
        ):
            result = process_scheduled_deletions.apply().get()

        assert result == {"deleted_users": 1, "reminders_sent": 1, "errors": []}
        db_session.expire_all()
        assert db_session.get(User, expired_id) is None

    def test_nothing_due(self, session_factory, notifier):
        from wireline.tasks.cleanup import process_scheduled_deletions

        with (
            patch("wireline.tasks.cleanup.SessionLocal", session_factory),
            patch("wireline.tasks.cleanup.EmailService", return_value=notifier),
        ):
            result = process_scheduled_deletions.apply().get()

        assert result == {"deleted_users": 0, "reminders_sent": 0, "errors": []}


class TestBeatSchedule:
    def test_daily_entry(self):
        entry = celery_app.conf.beat_schedule["process-scheduled-deletions-daily"]
        assert entry["task"] == "wireline.tasks.cleanup.process_scheduled_deletions"
        assert entry["schedule"] == crontab(hour=4, minute=0)

    def test_hourly_code_purge(self):
        entry = celery_app.conf.beat_schedule["purge-expired-otp-codes-hourly"]
        assert entry["task"] == "wireline.tasks.cleanup.purge_expired_otp_codes"
        assert entry["schedule"] == crontab(minute=30)

    def test_task_registered(self):
        import wireline.tasks  # noqa: F401

        assert "wireline.tasks.cleanup.process_scheduled_deletions" in celery_app.tasks


class TestPurgeExpiredOtpCodes:
    def test_removes_expired_codes(self, session_factory, make_user, db_session):
        user = make_user()
        create_otp_code(
            db_session,
            user,
            OtpPurpose.EMAIL_VERIFICATION,
            now=datetime.now(UTC) - timedelta(hours=1),
        )
        create_otp_code(db_session, user, OtpPurpose.PASSWORD_RESET)
        db_session.commit()

        from wireline.tasks.cleanup import purge_expired_otp_codes

        with patch("wireline.tasks.cleanup.SessionLocal", session_factory):
            removed = purge_expired_otp_codes.apply().get()

        assert removed == 1
        db_session.expire_all()
        remaining = db_session.execute(select(OtpCode.purpose)).scalars().all()
        assert remaining == [OtpPurpose.PASSWORD_RESET]
