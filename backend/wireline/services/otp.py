"""One-time code store for email verification and password reset.

Codes are six random digits, valid for ``OTP_EXPIRE_MINUTES`` and usable
once. Issuing a code supersedes every unused code the account holds for the
same purpose. Callers commit.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from wireline.core.config import settings
from wireline.models import OtpCode, OtpPurpose, User

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_code() -> str:
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def create_otp_code(
    db: Session, account: User, purpose: OtpPurpose, now: datetime | None = None
) -> OtpCode:
    """Issue a fresh code for an account, retiring its earlier unused ones."""
    now = now or datetime.now(UTC)
    db.execute(
        update(OtpCode)
        .where(OtpCode.user_id == account.id)
        .where(OtpCode.purpose == purpose)
        .where(OtpCode.used_at.is_(None))
        .values(used_at=now)
    )
    otp = OtpCode(
        user_id=account.id,
        email=account.email,
        code=generate_code(),
        purpose=purpose,
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        created_at=now,
    )
    db.add(otp)
    db.flush()
    logger.info(f"Issued {purpose.value} code for {account.username}")
    return otp


def get_valid_otp_code(
    db: Session,
    email: str,
    code: str,
    purpose: OtpPurpose,
    now: datetime | None = None,
) -> OtpCode | None:
    """Newest unused, unexpired code matching address, digits and purpose."""
    now = now or datetime.now(UTC)
    stmt = (
        select(OtpCode)
        .where(OtpCode.email == email)
        .where(OtpCode.code == code)
        .where(OtpCode.purpose == purpose)
        .where(OtpCode.used_at.is_(None))
        .where(OtpCode.expires_at > now)
        .order_by(OtpCode.created_at.desc())
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def mark_otp_code_used(db: Session, otp_id: UUID, now: datetime | None = None) -> bool:
    """Consume a code.

    Returns:
        False if the code was already used, so two requests racing on the
        same code cannot both succeed.
    """
    stmt = (
        update(OtpCode)
        .where(OtpCode.id == otp_id)
        .where(OtpCode.used_at.is_(None))
        .values(used_at=now or datetime.now(UTC))
    )
    return bool(db.execute(stmt).rowcount)


def cleanup_expired_otp_codes(db: Session, now: datetime | None = None) -> int:
    """Delete expired codes. Returns the number removed."""
    stmt = delete(OtpCode).where(OtpCode.expires_at < (now or datetime.now(UTC)))
    removed = db.execute(stmt).rowcount
    if removed:
        logger.info(f"Removed {removed} expired one-time codes")
    return removed
