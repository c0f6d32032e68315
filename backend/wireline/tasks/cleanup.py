"""Celery entry points for the scheduled account deletion scan and expired
one-time code removal.

The deletion task runs the same scan as the in-process scheduler and the admin
"run cleanup" endpoint. Celery beat triggers it daily and purges codes
hourly (see ``wireline.core.celery_app``).
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from wireline.core.celery_app import celery_app
from wireline.core.database import SessionLocal
from wireline.core.logging import generate_request_id, set_scan_id
from wireline.services.cleanup import run_cleanup_scan
from wireline.services.email import EmailService
from wireline.services.otp import cleanup_expired_otp_codes

logger = logging.getLogger(__name__)


@celery_app.task  # type: ignore[misc]
def process_scheduled_deletions() -> dict[str, Any]:
    """Delete accounts past their grace period and send due reminders.

    Returns:
        Dict with ``deleted_users``, ``reminders_sent`` and ``errors``.
    """
    set_scan_id(generate_request_id())
    db: Session = SessionLocal()
    try:
        result = run_cleanup_scan(db, EmailService())
    finally:
        db.close()

    logger.info(f"Scheduled deletions completed: {result}")
    return result.to_dict()


@celery_app.task  # type: ignore[misc]
def purge_expired_otp_codes() -> int:
    """Delete one-time codes past their expiry. Returns the number removed."""
    db: Session = SessionLocal()
    try:
        removed = cleanup_expired_otp_codes(db)
        db.commit()
    finally:
        db.close()
    return removed
