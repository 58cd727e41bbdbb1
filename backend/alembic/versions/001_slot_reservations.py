"""Turfs, slot locks, bookings and slot status index

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONFIRMED_ONLY = sa.text("booking_status = 'confirmed'")


def upgrade() -> None:
    op.create_table(
        "turfs",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("vendor_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("cancellation_hours", sa.Integer(), nullable=True),
        sa.Column("is_suspended", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_turfs_vendor_id", "turfs", ["vendor_id"])

    op.create_table(
        "slot_locks",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("vendor_id", sa.Text(), nullable=False),
        sa.Column("turf_id", sa.Text(), nullable=False),
        sa.Column("sport", sa.Text(), nullable=False),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("time_slot", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("locked_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'locked'")),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_slot_locks_slot", "slot_locks",
        ["vendor_id", "turf_id", "sport", "date", "time_slot", "status"],
    )
    op.create_index("ix_slot_locks_status_expires", "slot_locks", ["status", "expires_at"])
    op.create_index("ix_slot_locks_user_id", "slot_locks", ["user_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("order_id", sa.Text(), nullable=True),
        sa.Column("vendor_id", sa.Text(), nullable=False),
        sa.Column("turf_id", sa.Text(), sa.ForeignKey("turfs.id"), nullable=False),
        sa.Column("sports", sa.Text(), nullable=False),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("time_slot", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("lock_id", sa.Text(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("payment_status", sa.Text(), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("booking_status", sa.Text(), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("refund_status", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "uq_bookings_confirmed_slot", "bookings",
        ["vendor_id", "turf_id", "sports", "date", "time_slot"],
        unique=True,
        sqlite_where=CONFIRMED_ONLY,
        postgresql_where=CONFIRMED_ONLY,
    )
    op.create_index("ix_bookings_user_created", "bookings", ["user_id", "created_at"])

    op.create_table(
        "slot_status",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("turf_id", sa.Text(), nullable=False),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("sport", sa.Text(), nullable=False),
        sa.Column("time_slot", sa.Text(), nullable=False),
        sa.Column("booked", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("booking_id", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("turf_id", "date", "sport", "time_slot"),
    )


def downgrade() -> None:
    op.drop_table("slot_status")
    op.drop_index("ix_bookings_user_created", table_name="bookings")
    op.drop_index("uq_bookings_confirmed_slot", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_slot_locks_user_id", table_name="slot_locks")
    op.drop_index("ix_slot_locks_status_expires", table_name="slot_locks")
    op.drop_index("ix_slot_locks_slot", table_name="slot_locks")
    op.drop_table("slot_locks")
    op.drop_index("ix_turfs_vendor_id", table_name="turfs")
    op.drop_table("turfs")
