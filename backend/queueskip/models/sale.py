"""
Confirmed sale: one row per paid purchase, keyed by the payment session id.

The primary key on session_id is what makes promotion idempotent: a second
insert for the same session is rejected by the database, not by a lock.
created_at is copied from the hold so the sale keeps counting against the
period the slot was reserved in.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from queueskip.db.base import Base
from queueskip.core.timeutils import utcnow


class ConfirmedSale(Base):
    __tablename__ = "confirmed_sales"

    session_id = Column(String(255), primary_key=True)
    venue_id = Column(String(64), ForeignKey("venues.id"), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    amount_total = Column(Integer, nullable=True)
    receive_promo = Column(Boolean, nullable=False, default=False)
    payment_status = Column(String(50), nullable=False, default="paid")
    created_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_confirmed_sales_venue_status_created", "venue_id", "payment_status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ConfirmedSale(session={self.session_id}, venue={self.venue_id})>"
