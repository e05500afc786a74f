"""
Pending hold ("queue" row): a slot provisionally reserved while the customer
is away at the payment provider.

A hold counts toward capacity only while status = 'pending' AND expires_at is
in the future. Confirmed holds are deleted (promoted into confirmed_sales);
failed or declined ones keep their row with a terminal status.
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String

from queueskip.db.base import Base, TimestampMixin


class HoldStatus(str, enum.Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    FAILED_INVENTORY_CHECK = "failed_inventory_check"


class PendingHold(Base, TimestampMixin):
    __tablename__ = "pending_holds"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(255), nullable=False, unique=True, index=True)
    venue_id = Column(String(64), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=False)
    amount_total = Column(Integer, nullable=False)  # minor units
    receive_promo = Column(Boolean, nullable=False, default=False)
    status = Column(String(32), nullable=False, default=HoldStatus.PENDING.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'cancelled', 'failed_inventory_check')",
            name="check_hold_status",
        ),
        CheckConstraint("amount_total >= 0", name="check_hold_amount_non_negative"),
        # Capacity counting: venue + status + creation period
        Index("ix_pending_holds_venue_status_created", "venue_id", "status", "created_at"),
        # Sweeper
        Index("ix_pending_holds_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<PendingHold(session={self.session_id}, venue={self.venue_id}, status={self.status})>"
