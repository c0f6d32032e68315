import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from wireline.models.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class AccountStatus(enum.IntEnum):
    INACTIVE = 0
    ACTIVE = 1


class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
            length=50,
        ),
        default=UserRole.USER,
        nullable=False,
    )
    status: Mapped[int] = mapped_column(
        SmallInteger, default=AccountStatus.ACTIVE, nullable=False
    )

    # Scheduled deletion: set together with status=INACTIVE by an admin.
    # The account is removed once the 30-day grace period has elapsed.
    deletion_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    # Reminder threshold (7, 3 or 1 days) last emailed for the current schedule
    last_reminder_days: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def is_scheduled_for_deletion(self) -> bool:
        return self.deletion_scheduled_at is not None
