"""Track the last deletion reminder sent to each scheduled account

Adds:
- users.last_reminder_days: Reminder threshold (7, 3 or 1) last emailed for
  the current deletion schedule, so the daily scan never repeats it

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column("last_reminder_days", sa.SmallInteger(), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("users", "last_reminder_days")
