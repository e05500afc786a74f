"""Initial schema: venues, weekly schedules, holds, sales and the payment audit log.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Venues table
    op.create_table(
        "venues",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("image_url", sa.String(255), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("time_zone", sa.String(64), nullable=False, server_default=sa.text("'UTC'")),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_venue_price_non_negative"),
    )

    # Day schedules: one row per venue and day of week.
    # This row is what reserve() locks, so the unique constraint is also what
    # guarantees there is exactly one lock per venue+day.
    op.create_table(
        "day_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("slots_per_period", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("venue_id", "day_of_week", name="uq_day_schedule_venue_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_day_of_week_range"),
        sa.CheckConstraint("slots_per_period >= 0", name="check_slots_per_period_non_negative"),
    )
    op.create_index("ix_day_schedules_id", "day_schedules", ["id"])
    op.create_index("ix_day_schedules_venue_id", "day_schedules", ["venue_id"])

    # Hour windows
    op.create_table(
        "hour_windows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "day_schedule_id",
            sa.Integer(),
            sa.ForeignKey("day_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("custom_slots", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("custom_slots IS NULL OR custom_slots >= 0", name="check_custom_slots_non_negative"),
    )
    op.create_index("ix_hour_windows_id", "hour_windows", ["id"])
    op.create_index("ix_hour_windows_day_schedule_id", "hour_windows", ["day_schedule_id"])

    # Pending holds
    op.create_table(
        "pending_holds",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("amount_total", sa.Integer(), nullable=False),
        sa.Column("receive_promo", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'cancelled', 'failed_inventory_check')",
            name="check_hold_status",
        ),
        sa.CheckConstraint("amount_total >= 0", name="check_hold_amount_non_negative"),
    )
    op.create_index("ix_pending_holds_session_id", "pending_holds", ["session_id"], unique=True)
    # The capacity count runs under the schedule row lock on every reservation:
    # WHERE venue_id = ? AND status = 'pending' AND created_at in the period.
    # Keeping it an index range scan keeps the lock short.
    op.create_index(
        "ix_pending_holds_venue_status_created", "pending_holds", ["venue_id", "status", "created_at"]
    )
    op.create_index("ix_pending_holds_expires_at", "pending_holds", ["expires_at"])

    # Confirmed sales: the primary key on session_id makes promotion idempotent
    op.create_table(
        "confirmed_sales",
        sa.Column("session_id", sa.String(255), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("amount_total", sa.Integer(), nullable=True),
        sa.Column("receive_promo", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("payment_status", sa.String(50), nullable=False, server_default=sa.text("'paid'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_confirmed_sales_venue_id", "confirmed_sales", ["venue_id"])
    op.create_index(
        "ix_confirmed_sales_venue_status_created",
        "confirmed_sales",
        ["venue_id", "payment_status", "created_at"],
    )

    # Payment audit log: append-only, no FK so unknown venues are still recorded
    op.create_table(
        "payment_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("venue_id", sa.String(64), nullable=True),
        sa.Column("outcome", sa.String(16), nullable=False),
        sa.Column("payment_status", sa.String(50), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("amount_total", sa.Integer(), nullable=True),
        sa.Column("receipt", sa.JSON(), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_payment_audit_log_session_id", "payment_audit_log", ["session_id"])
    op.create_index("ix_payment_audit_log_venue_received", "payment_audit_log", ["venue_id", "received_at"])


def downgrade() -> None:
    op.drop_table("payment_audit_log")
    op.drop_table("confirmed_sales")
    op.drop_table("pending_holds")
    op.drop_table("hour_windows")
    op.drop_table("day_schedules")
    op.drop_table("venues")
