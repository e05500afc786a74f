"""
Repository interface for the reservation core.

The ledger, availability calculator, sweeper, reconciliation handler and
schedule service only talk to storage through this interface. A concrete
engine (SQLAlchemy today) supplies count-in-range, insert-with-uniqueness,
update-status and row-lock-and-read.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, Optional, Sequence

from queueskip.models import (
    AuditLogEntry,
    ConfirmedSale,
    DaySchedule,
    HourWindow,
    PendingHold,
    Venue,
)


@dataclass(frozen=True)
class SaleFilters:
    venue_id: Optional[str] = None
    created_from: Optional[datetime] = None  # inclusive
    created_to: Optional[datetime] = None  # exclusive
    payment_status: Optional[str] = None


class ReservationStore(ABC):
    """
    Storage operations used by the reservation core.

    Every method may raise TransientStoreError on connection or timeout
    failures; callers treat that as "nothing happened" and retry the whole
    operation.
    """

    # Unit of work

    @abstractmethod
    def transaction(self) -> AsyncContextManager["ReservationStore"]:
        """Commit on clean exit, roll back on any exception."""

    @abstractmethod
    async def add(self, entity) -> None:
        """Stage and flush a new row."""

    @abstractmethod
    async def insert_unique(self, entity) -> bool:
        """
        Insert a row guarded by a unique key.

        Returns False (and leaves the surrounding transaction usable) when the
        key already exists.
        """

    # Venues

    @abstractmethod
    async def get_venue(self, venue_id: str, refresh: bool = False) -> Optional[Venue]:
        pass

    @abstractmethod
    async def list_venues(self) -> Sequence[Venue]:
        pass

    # Schedules

    @abstractmethod
    async def get_day_schedule(
        self, venue_id: str, day_of_week: int, for_update: bool = False
    ) -> Optional[DaySchedule]:
        """Read the schedule row; for_update takes the venue+day write lock."""

    @abstractmethod
    async def get_day_schedule_by_id(self, day_schedule_id: int, for_update: bool = False) -> Optional[DaySchedule]:
        pass

    @abstractmethod
    async def list_day_schedules(self, venue_id: str) -> Sequence[DaySchedule]:
        pass

    @abstractmethod
    async def delete_day_schedule(self, day_schedule_id: int) -> bool:
        pass

    @abstractmethod
    async def get_hour_window(self, window_id: int) -> Optional[HourWindow]:
        pass

    @abstractmethod
    async def delete_hour_window(self, window_id: int) -> bool:
        pass

    # Holds

    @abstractmethod
    async def get_hold(self, session_id: str) -> Optional[PendingHold]:
        pass

    @abstractmethod
    async def get_pending_hold(self, session_id: str) -> Optional[PendingHold]:
        """Hold with status=pending regardless of expiry."""

    @abstractmethod
    async def count_active_holds(
        self, venue_id: str, period_start: datetime, period_end: datetime, now: datetime
    ) -> int:
        """Pending, unexpired holds created in [period_start, period_end)."""

    @abstractmethod
    async def update_hold_status(self, session_id: str, from_status: str, to_status: str) -> int:
        pass

    @abstractmethod
    async def delete_hold(self, session_id: str) -> int:
        pass

    @abstractmethod
    async def delete_expired_holds(self, now: datetime) -> int:
        pass

    # Sales

    @abstractmethod
    async def get_sale(self, session_id: str) -> Optional[ConfirmedSale]:
        pass

    @abstractmethod
    async def count_confirmed_sales(self, venue_id: str, period_start: datetime, period_end: datetime) -> int:
        """Paid sales created in [period_start, period_end)."""

    @abstractmethod
    async def list_sales(
        self, filters: SaleFilters, offset: int, limit: int
    ) -> tuple[list[ConfirmedSale], int]:
        pass

    # Audit

    @abstractmethod
    async def append_audit_entry(self, entry: AuditLogEntry) -> None:
        pass

    @abstractmethod
    async def list_audit_entries(
        self, venue_id: Optional[str], session_id: Optional[str], offset: int, limit: int
    ) -> tuple[list[AuditLogEntry], int]:
        pass
