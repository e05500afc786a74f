"""
Append-only record of every payment outcome event received.
Rows are never updated or deleted.
"""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from queueskip.db.base import Base
from queueskip.core.timeutils import utcnow


class AuditLogEntry(Base):
    __tablename__ = "payment_audit_log"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(255), nullable=False, index=True)
    # No FK: the event is recorded even when it names an unknown venue
    venue_id = Column(String(64), nullable=True)
    outcome = Column(String(16), nullable=False)  # paid, failed
    payment_status = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    amount_total = Column(Integer, nullable=True)
    receipt = Column(JSON, nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_payment_audit_log_venue_received", "venue_id", "received_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(id={self.id}, session={self.session_id}, outcome={self.outcome})>"
