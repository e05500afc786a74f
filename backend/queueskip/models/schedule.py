"""
Weekly sale schedule.

Key design decisions:
- Unique constraint on (venue_id, day_of_week): one DaySchedule per venue and day,
  written with upsert semantics by the schedule service
- The DaySchedule row is the lock anchor for every reservation against that
  venue+day (SELECT ... FOR UPDATE in the ledger)
- HourWindows never cross midnight; an end_time of 00:00 means "until midnight"
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from queueskip.db.base import Base, TimestampMixin


class DaySchedule(Base, TimestampMixin):
    __tablename__ = "day_schedules"

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(String(64), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    slots_per_period = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    venue = relationship("Venue", back_populates="day_schedules")
    hour_windows = relationship(
        "HourWindow",
        back_populates="day_schedule",
        lazy="selectin",
        order_by="HourWindow.start_time",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("venue_id", "day_of_week", name="uq_day_schedule_venue_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_day_of_week_range"),
        CheckConstraint("slots_per_period >= 0", name="check_slots_per_period_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<DaySchedule(id={self.id}, venue={self.venue_id}, day={self.day_of_week}, "
            f"slots={self.slots_per_period}, active={self.is_active})>"
        )


class HourWindow(Base, TimestampMixin):
    __tablename__ = "hour_windows"

    id = Column(Integer, primary_key=True, index=True)
    day_schedule_id = Column(
        Integer, ForeignKey("day_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    custom_slots = Column(Integer, nullable=True)

    day_schedule = relationship("DaySchedule", back_populates="hour_windows")

    __table_args__ = (
        CheckConstraint("custom_slots IS NULL OR custom_slots >= 0", name="check_custom_slots_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<HourWindow(id={self.id}, day={self.day_schedule_id}, {self.start_time}-{self.end_time})>"
