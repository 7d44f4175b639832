"""Create access_permissions table.

Revision ID: 20261018_0004
Revises: 20261018_0003
Create Date: 2026-10-18 09:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0004"
down_revision: Union[str, None] = "20261018_0003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "access_permissions",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("home_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("room_name", sa.String(length=255), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["home_id"], ["homes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "day_of_week BETWEEN 0 AND 6",
            name="ck_access_permissions_day_of_week",
        ),
    )
    op.create_index(
        "ix_access_permissions_home_user_day",
        "access_permissions",
        ["home_id", "user_id", "day_of_week"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_access_permissions_home_user_day", table_name="access_permissions")
    op.drop_table("access_permissions")
