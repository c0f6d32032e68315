"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVITY_ACTIONS = (
    "create",
    "update",
    "delete",
    "report",
    "admin_create_user",
    "admin_schedule_deletion",
    "admin_restore_user",
    "admin_manual_cleanup",
    "system_permanent_deletion",
    "system_deletion_reminder",
)

TOOL_CATEGORIES = (
    "Pressure Equipment",
    "Perforating Equipment",
    "Logging Equipment",
    "Wireline Equipment",
    "Completion Equipment",
    "Other",
)


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "role",
            sa.Enum("admin", "user", name="userrole", native_enum=False, length=50),
            nullable=False,
            server_default="user",
        ),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="1"),
        sa.Column("deletion_scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_deletion_scheduled_at", "users", ["deletion_scheduled_at"])

    # Tools table
    op.create_table(
        "tools",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tool_id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*TOOL_CATEGORIES, name="toolcategory", native_enum=False, length=50),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("red", "yellow", "green", "white", name="tooltag", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column(
            "last_updated", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "last_updated_by",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_tools_tool_id", "tools", ["tool_id"], unique=True)
    op.create_index("ix_tools_status", "tools", ["status"])
    op.create_index("ix_tools_last_updated", "tools", ["last_updated"])

    # Activities table
    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "action",
            sa.Enum(*ACTIVITY_ACTIONS, name="activityaction", native_enum=False, length=50),
            nullable=False,
        ),
        sa.Column(
            "tool_id",
            sa.Uuid(),
            sa.ForeignKey("tools.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("previous_status", sa.String(20), nullable=True),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_action", "activities", ["action"])
    op.create_index("ix_activities_timestamp", "activities", ["timestamp"])


def downgrade() -> None:
    op.drop_table("activities")
    op.drop_table("tools")
    op.drop_table("users")
