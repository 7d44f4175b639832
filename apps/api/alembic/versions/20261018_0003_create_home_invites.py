"""Create home_invites table.

Revision ID: 20261018_0003
Revises: 20261018_0002
Create Date: 2026-10-18 09:20:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0003"
down_revision: Union[str, None] = "20261018_0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "home_invites",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("home_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="member"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.UUID(as_uuid=False), nullable=True),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["home_id"], ["homes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("status IN ('pending', 'accepted')", name="ck_home_invites_status"),
    )
    op.create_index("ix_home_invites_email", "home_invites", ["email"], unique=False)
    op.create_index(
        "ix_home_invites_home_id_email",
        "home_invites",
        ["home_id", "email"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_home_invites_home_id_email", table_name="home_invites")
    op.drop_index("ix_home_invites_email", table_name="home_invites")
    op.drop_table("home_invites")
