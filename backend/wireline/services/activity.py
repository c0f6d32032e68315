"""Activity log service: append entries and read the recent feed."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from wireline.models.activity import Activity, ActivityAction
from wireline.models.tool import Tool
from wireline.models.user import User


def log_activity(
    db: Session,
    user: User | None,
    action: ActivityAction,
    tool: Tool | None = None,
    details: str | None = None,
    comments: str | None = None,
    previous_status: str | None = None,
) -> Activity:
    """Append an entry to the activity log.

    Args:
        db: Database session
        user: The user performing the action (None for system actions)
        action: The type of action being performed
        tool: Optional tool the action applies to
        details: Human-readable description
        comments: Optional free-text comment entered by the user
        previous_status: Tag the tool had before a status change

    Returns:
        The created Activity entry
    """
    activity = Activity(
        user_id=user.id if user else None,
        action=action,
        tool_id=tool.id if tool else None,
        timestamp=datetime.now(UTC),
        details=details,
        comments=comments,
        previous_status=previous_status,
    )

    db.add(activity)
    # Note: Caller should commit the transaction
    # This allows the entry to be part of the same transaction as the action

    return activity


def log_system_activity(
    db: Session,
    action: ActivityAction,
    details: str,
    user_id: UUID | None = None,
) -> Activity:
    """Append an entry written by a background job (no acting user)."""
    activity = Activity(
        user_id=user_id,
        action=action,
        tool_id=None,
        timestamp=datetime.now(UTC),
        details=details,
    )
    db.add(activity)
    return activity


def list_recent_activities(db: Session, limit: int = 10) -> list[Activity]:
    """Return the newest activity entries with actor and tool loaded."""
    stmt = (
        select(Activity)
        .options(selectinload(Activity.user), selectinload(Activity.tool))
        .order_by(Activity.timestamp.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
