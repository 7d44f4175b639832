"""Create rooms and devices tables.

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 09:10:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0002"
down_revision: Union[str, None] = "20261018_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rooms",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("home_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("circuit_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["home_id"], ["homes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("home_id", "name", name="uq_rooms_home_name"),
    )
    op.create_index("ix_rooms_home_id", "rooms", ["home_id"], unique=False)

    op.create_table(
        "devices",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("room_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="off"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_devices_room_id", "devices", ["room_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_devices_room_id", table_name="devices")
    op.drop_table("devices")
    op.drop_index("ix_rooms_home_id", table_name="rooms")
    op.drop_table("rooms")
