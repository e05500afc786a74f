"""
Declarative base and shared columns.
"""

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase

from queueskip.core.timeutils import utcnow


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    # Application-side defaults keep timestamps in the same clock as period math
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
