"""Activity log model: append-only record of user and system actions."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wireline.models.base import Base, UUIDMixin

if TYPE_CHECKING:
    from wireline.models.tool import Tool
    from wireline.models.user import User


class ActivityAction(str, Enum):
    """Action types recorded in the activity log."""

    # Tool operations
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    # Reports
    REPORT = "report"

    # Admin account management
    ADMIN_CREATE_USER = "admin_create_user"
    ADMIN_SCHEDULE_DELETION = "admin_schedule_deletion"
    ADMIN_RESTORE_USER = "admin_restore_user"
    ADMIN_MANUAL_CLEANUP = "admin_manual_cleanup"

    # Cleanup scheduler
    SYSTEM_PERMANENT_DELETION = "system_permanent_deletion"
    SYSTEM_DELETION_REMINDER = "system_deletion_reminder"


class Activity(Base, UUIDMixin):
    """Activity log entry.

    Immutable once written. ``user_id`` is the actor and is NULL for entries
    written by the cleanup scheduler.
    """

    __tablename__ = "activities"

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[ActivityAction] = mapped_column(
        SQLEnum(
            ActivityAction,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
            length=50,
        ),
        nullable=False,
        index=True,
    )
    tool_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("tools.id", ondelete="SET NULL"),
        nullable=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Relationships
    user: Mapped["User | None"] = relationship("User")
    tool: Mapped["Tool | None"] = relationship("Tool")

    __table_args__ = (
        Index("ix_activities_timestamp", "timestamp"),
    )
