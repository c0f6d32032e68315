import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Session

from wireline.core.config import settings
from wireline.core.deps import get_current_user, get_db, get_email_service
from wireline.core.rate_limiting import limiter, login_limit, otp_limit
from wireline.core.security import create_session_token, verify_password
from wireline.models import OtpPurpose, User, UserRole
from wireline.services.accounts import (
    AccountExistsError,
    create_account,
    get_account,
    get_account_by_email,
    get_account_by_username,
    mark_email_verified,
    update_password,
)
from wireline.services.email import EmailService
from wireline.services.otp import create_otp_code, get_valid_otp_code, mark_otp_code_used

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


class UserResponse(BaseModel):
    id: UUID
    username: str
    full_name: str
    email: str
    role: UserRole
    status: int
    email_verified_at: datetime | None = None
    deletion_scheduled_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=16)


class ResendOtpRequest(BaseModel):
    email: EmailStr
    type: OtpPurpose = OtpPurpose.EMAIL_VERIFICATION


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=16)
    new_password: str = Field(min_length=6, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


def set_session_cookie(response: Response, user: User) -> None:
    token = create_session_token(str(user.id), role=user.role.value)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/login", response_model=UserResponse)
@limiter.limit(login_limit)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Verify username and password and start a session."""
    user = get_account_by_username(db, credentials.username)
    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.info(f"Login failed for username: {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    if not user.is_active:
        logger.info(f"Login refused for inactive account: {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    set_session_cookie(response, user)
    logger.info(f"Login succeeded for username: {user.username}")
    return user


@router.post("/logout")
async def logout(response: Response) -> dict[str, str]:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/user", response_model=UserResponse)
async def get_me(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    return current_user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> User:
    """Create a regular user account, log it in and mail a verification code."""
    try:
        user = create_account(
            db,
            username=body.username,
            password=body.password,
            full_name=body.full_name,
            email=body.email,
            role=UserRole.USER,
        )
    except AccountExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists",
        ) from e

    _send_code(db, email_service, user, OtpPurpose.EMAIL_VERIFICATION)
    db.refresh(user)
    set_session_cookie(response, user)
    return user


# =============================================================================
# Email Verification and Password Reset
# =============================================================================

_CODE_SENT = "If an account exists for this email, a code has been sent"


def _send_code(
    db: Session, email_service: EmailService, account: User, purpose: OtpPurpose
) -> None:
    """Issue a code, commit it, then mail it. Delivery failures are logged only."""
    otp = create_otp_code(db, account, purpose)
    db.commit()
    result = email_service.send_otp(account.email, account.full_name, otp.code, purpose)
    if not result.delivered:
        logger.warning(f"{purpose.value} code for {account.username} not delivered: {result.error}")


def _consume_code(db: Session, email: str, code: str, purpose: OtpPurpose) -> User | None:
    """Use up a valid code and return its account, or None if it cannot be used."""
    otp = get_valid_otp_code(db, email, code.strip(), purpose)
    if otp is None or not mark_otp_code_used(db, otp.id):
        return None
    return get_account(db, otp.user_id)


@router.post("/auth/verify-email", response_model=MessageResponse)
@limiter.limit(otp_limit)
def verify_email(
    request: Request,
    body: VerifyEmailRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Confirm an email address with the code mailed at registration."""
    user = _consume_code(db, body.email, body.code, OtpPurpose.EMAIL_VERIFICATION)
    if user is None:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification code",
        )

    mark_email_verified(db, user)
    db.commit()
    logger.info(f"Email verified for {user.username}")

    email_service.send_email_verified(user.email, user.full_name)
    return MessageResponse(message="Email verified successfully")


@router.post("/auth/resend-otp", response_model=MessageResponse)
@limiter.limit(otp_limit)
def resend_otp(
    request: Request,
    body: ResendOtpRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Mail a new code, retiring the previous one.

    The response is the same whether or not the address belongs to an account.
    """
    user = get_account_by_email(db, body.email)
    if user is None or not user.is_active:
        logger.info(f"No code sent: no active account for {body.email}")
    elif body.type == OtpPurpose.EMAIL_VERIFICATION and user.email_verified_at is not None:
        logger.info(f"No code sent: {user.username} is already verified")
    else:
        _send_code(db, email_service, user, body.type)
    return MessageResponse(message=_CODE_SENT)


@router.post("/auth/forgot-password", response_model=MessageResponse)
@limiter.limit(otp_limit)
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Start a password reset by mailing a reset code."""
    user = get_account_by_email(db, body.email)
    if user is None or not user.is_active:
        logger.info(f"No reset code sent: no active account for {body.email}")
    else:
        _send_code(db, email_service, user, OtpPurpose.PASSWORD_RESET)
    return MessageResponse(message=_CODE_SENT)


@router.post("/auth/reset-password", response_model=MessageResponse)
@limiter.limit(otp_limit)
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Set a new password using a reset code."""
    user = _consume_code(db, body.email, body.code, OtpPurpose.PASSWORD_RESET)
    if user is None:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset code",
        )

    update_password(db, user, body.new_password)
    db.commit()
    return MessageResponse(message="Password reset successfully")
