"""
Venue model: display data, unit price and the IANA zone all period math runs in.
"""

from sqlalchemy import Column, String, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from queueskip.db.base import Base, TimestampMixin


class Venue(Base, TimestampMixin):
    __tablename__ = "venues"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    image_url = Column(String(255), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    time_zone = Column(String(64), nullable=False, default="UTC")

    day_schedules = relationship(
        "DaySchedule",
        back_populates="venue",
        lazy="selectin",
        order_by="DaySchedule.day_of_week",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_venue_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Venue(id={self.id}, name={self.name}, tz={self.time_zone})>"
