"""Admin endpoints: account management and the scheduled deletion workflow.

Every route requires an authenticated admin. Email notifications sent from
here are best-effort: an undelivered message is logged and never changes the
response.
"""

import logging
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Session

from wireline.api.routes.auth import UserResponse
from wireline.core.deps import (
    get_cleanup_scheduler,
    get_db,
    get_email_service,
    parse_id,
    require_admin,
)
from wireline.models import ActivityAction, User, UserRole
from wireline.services.accounts import (
    AccountExistsError,
    cancel_deletion,
    create_account,
    days_until_deletion,
    final_deletion_date,
    get_account,
    list_accounts,
    list_scheduled_for_deletion,
    schedule_deletion,
)
from wireline.services.activity import log_activity
from wireline.services.cleanup import CleanupScheduler
from wireline.services.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# Request / Response Models
# =============================================================================


class AdminUserResponse(UserResponse):
    is_scheduled_for_deletion: bool = Field(alias="isScheduledForDeletion")
    days_to_deletion: int | None = Field(alias="daysToDeletion")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AdminCreateUserRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    role: UserRole = UserRole.USER


class ScheduleDeletionResponse(BaseModel):
    message: str
    scheduled_deletion_date: datetime = Field(alias="scheduledDeletionDate")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


class CleanupServiceStatus(BaseModel):
    is_running: bool = Field(alias="isRunning")
    next_run_time: datetime | None = Field(alias="nextRunTime")

    model_config = ConfigDict(populate_by_name=True)


class ScheduledUserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    deletion_scheduled_at: datetime
    days_remaining: int = Field(alias="daysRemaining")

    model_config = ConfigDict(populate_by_name=True)


class CleanupStatusResponse(BaseModel):
    cleanup_service: CleanupServiceStatus = Field(alias="cleanupService")
    scheduled_users: list[ScheduledUserResponse] = Field(alias="scheduledUsers")

    model_config = ConfigDict(populate_by_name=True)


class CleanupRunResponse(BaseModel):
    deleted_users: int = Field(alias="deletedUsers")
    reminders_sent: int = Field(alias="remindersSent")
    errors: list[str]

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Helper Functions
# =============================================================================


def _serialize_account(user: User, now: datetime) -> AdminUserResponse:
    scheduled_at = user.deletion_scheduled_at
    return AdminUserResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        email=user.email,
        role=user.role,
        status=user.status,
        email_verified_at=user.email_verified_at,
        deletion_scheduled_at=scheduled_at,
        created_at=user.created_at,
        is_scheduled_for_deletion=scheduled_at is not None,
        days_to_deletion=days_until_deletion(scheduled_at, now) if scheduled_at else None,
    )


def _get_account_or_404(db: Session, user_id: str) -> User:
    account = get_account(db, parse_id(user_id))
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account


# =============================================================================
# API Endpoints
# =============================================================================


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
) -> list[AdminUserResponse]:
    """List every account with its deletion state."""
    now = datetime.now(UTC)
    return [_serialize_account(user, now) for user in list_accounts(db)]


@router.post("/users", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: AdminCreateUserRequest,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
) -> AdminUserResponse:
    """Create an account with any role."""
    try:
        user = create_account(
            db,
            username=body.username,
            password=body.password,
            full_name=body.full_name,
            email=body.email,
            role=body.role,
        )
    except AccountExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists",
        ) from e

    log_activity(
        db,
        admin,
        ActivityAction.ADMIN_CREATE_USER,
        details=f"Admin {admin.username} created user {user.username} ({user.role.value})",
    )
    db.commit()
    db.refresh(user)
    return _serialize_account(user, datetime.now(UTC))


@router.delete("/users/{user_id}", response_model=ScheduleDeletionResponse)
def schedule_user_deletion(
    user_id: str,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> ScheduleDeletionResponse:
    """Schedule an account for deletion after the 30-day grace period.

    The account is deactivated immediately. Admin accounts, including the
    caller's own, cannot be scheduled.
    """
    target_id = parse_id(user_id)
    if target_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account",
        )

    account = _get_account_or_404(db, user_id)
    if account.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete admin accounts",
        )

    scheduled_at = schedule_deletion(db, account)
    log_activity(
        db,
        admin,
        ActivityAction.ADMIN_SCHEDULE_DELETION,
        details=(
            f"Admin {admin.username} scheduled user {account.username} "
            f"for deletion on {final_deletion_date(scheduled_at).strftime('%Y-%m-%d')}"
        ),
    )
    db.commit()
    logger.info(f"Scheduled deletion of user {account.username} by {admin.username}")

    notification = email_service.send_deletion_warning(
        account.email, account.full_name, scheduled_at
    )
    if not notification.delivered:
        logger.warning(f"Deletion warning not delivered to {account.email}: {notification.error}")

    return ScheduleDeletionResponse(
        message="User scheduled for deletion. They will be notified by email.",
        scheduled_deletion_date=final_deletion_date(scheduled_at),
    )


@router.put("/users/{user_id}/restore", response_model=MessageResponse)
def restore_user(
    user_id: str,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> MessageResponse:
    """Cancel a scheduled deletion and reactivate the account."""
    account = _get_account_or_404(db, user_id)

    cancel_deletion(db, account)
    log_activity(
        db,
        admin,
        ActivityAction.ADMIN_RESTORE_USER,
        details=f"Admin {admin.username} restored user {account.username}",
    )
    db.commit()
    logger.info(f"Restored user {account.username} by {admin.username}")

    notification = email_service.send_account_restored(account.email, account.full_name)
    if not notification.delivered:
        logger.warning(f"Restore notice not delivered to {account.email}: {notification.error}")

    return MessageResponse(message="User restored successfully")


@router.get("/cleanup/status", response_model=CleanupStatusResponse)
async def cleanup_status(
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    scheduler: Annotated[CleanupScheduler, Depends(get_cleanup_scheduler)],
) -> CleanupStatusResponse:
    """Scheduler state and the accounts currently in the deletion pipeline."""
    service = scheduler.get_status()
    now = datetime.now(UTC)
    scheduled = [
        ScheduledUserResponse(
            id=user.id,
            username=user.username,
            email=user.email,
            deletion_scheduled_at=user.deletion_scheduled_at,
            days_remaining=days_until_deletion(user.deletion_scheduled_at, now),
        )
        for user in list_scheduled_for_deletion(db)
        if user.deletion_scheduled_at is not None
    ]
    return CleanupStatusResponse(
        cleanup_service=CleanupServiceStatus(
            is_running=service.is_running,
            next_run_time=service.next_run_time,
        ),
        scheduled_users=scheduled,
    )


@router.post("/cleanup/run", response_model=CleanupRunResponse)
def run_cleanup(
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    scheduler: Annotated[CleanupScheduler, Depends(get_cleanup_scheduler)],
) -> CleanupRunResponse:
    """Run a cleanup scan now and report what it did."""
    result = scheduler.run_manual_cleanup()

    log_activity(
        db,
        admin,
        ActivityAction.ADMIN_MANUAL_CLEANUP,
        details=(
            f"Admin {admin.username} ran manual cleanup: "
            f"{result.deleted_users} deleted, {result.reminders_sent} reminders sent"
        ),
    )
    db.commit()

    return CleanupRunResponse(
        deleted_users=result.deleted_users,
        reminders_sent=result.reminders_sent,
        errors=result.errors,
    )
