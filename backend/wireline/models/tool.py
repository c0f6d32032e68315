import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wireline.models.base import Base, UUIDMixin

if TYPE_CHECKING:
    from wireline.models.user import User


class ToolTag(str, enum.Enum):
    """Inventory status tag painted on a tool."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    WHITE = "white"


class ToolCategory(str, enum.Enum):
    PRESSURE = "Pressure Equipment"
    PERFORATING = "Perforating Equipment"
    LOGGING = "Logging Equipment"
    WIRELINE = "Wireline Equipment"
    COMPLETION = "Completion Equipment"
    OTHER = "Other"


class Tool(Base, UUIDMixin):
    __tablename__ = "tools"

    tool_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[ToolCategory] = mapped_column(
        Enum(
            ToolCategory,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
            length=50,
        ),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ToolTag] = mapped_column(
        Enum(
            ToolTag,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        index=True,
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    last_updated_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    updated_by: Mapped["User | None"] = relationship("User")
