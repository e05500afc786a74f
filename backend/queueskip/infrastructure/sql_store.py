"""
SQLAlchemy implementation of the reservation store.

Connection-level failures (OperationalError, pool timeouts, dropped
connections) are translated into TransientStoreError so callers see a single
retryable error type. IntegrityError is not transient and is handled where a
unique key is expected to collide.
"""

import asyncio
import functools
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from queueskip.core.exceptions import TransientStoreError
from queueskip.core.logging import get_logger
from queueskip.core.metrics import store_failures
from queueskip.core.timeutils import as_utc
from queueskip.models import (
    AuditLogEntry,
    ConfirmedSale,
    DaySchedule,
    HoldStatus,
    HourWindow,
    PendingHold,
    Venue,
)
from queueskip.services.interfaces.store import ReservationStore, SaleFilters

logger = get_logger(__name__)

TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, IntegrityError):
        return False
    if isinstance(exc, TRANSIENT_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def store_operation(operation: str):
    """Translate connection-level failures of a store call into TransientStoreError."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
                if not _is_transient(exc):
                    raise
                store_failures.labels(operation=operation).inc()
                logger.warning("store_transient_failure", operation=operation, error=str(exc))
                raise TransientStoreError(operation, exc) from exc

        return wrapper

    return decorator


class SqlAlchemyReservationStore(ReservationStore):
    """Store bound to one AsyncSession (one request or one job run)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Unit of work

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlAlchemyReservationStore"]:
        try:
            yield self
            await self.commit()
        except BaseException:
            await self._rollback_quietly()
            raise

    @store_operation("commit")
    async def commit(self) -> None:
        await self.session.commit()

    async def _rollback_quietly(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as exc:
            # Connection already gone; the original error is the one worth raising
            logger.warning("store_rollback_failed", error=str(exc))

    @store_operation("add")
    async def add(self, entity) -> None:
        self.session.add(entity)
        await self.session.flush()

    @store_operation("insert_unique")
    async def insert_unique(self, entity) -> bool:
        try:
            async with self.session.begin_nested():
                self.session.add(entity)
        except IntegrityError:
            logger.info("unique_insert_rejected", entity=type(entity).__name__)
            return False
        return True

    # Venues

    @store_operation("get_venue")
    async def get_venue(self, venue_id: str, refresh: bool = False) -> Optional[Venue]:
        query = select(Venue).where(Venue.id == venue_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @store_operation("list_venues")
    async def list_venues(self) -> Sequence[Venue]:
        result = await self.session.execute(
            select(Venue).order_by(Venue.id).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    # Schedules

    @store_operation("get_day_schedule")
    async def get_day_schedule(
        self, venue_id: str, day_of_week: int, for_update: bool = False
    ) -> Optional[DaySchedule]:
        query = select(DaySchedule).where(
            DaySchedule.venue_id == venue_id,
            DaySchedule.day_of_week == day_of_week,
        )
        if for_update:
            # Re-read after the lock is granted; the identity map may hold a stale copy
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @store_operation("get_day_schedule_by_id")
    async def get_day_schedule_by_id(self, day_schedule_id: int, for_update: bool = False) -> Optional[DaySchedule]:
        query = select(DaySchedule).where(DaySchedule.id == day_schedule_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @store_operation("list_day_schedules")
    async def list_day_schedules(self, venue_id: str) -> Sequence[DaySchedule]:
        result = await self.session.execute(
            select(DaySchedule)
            .where(DaySchedule.venue_id == venue_id)
            .order_by(DaySchedule.day_of_week)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @store_operation("delete_day_schedule")
    async def delete_day_schedule(self, day_schedule_id: int) -> bool:
        day = await self.session.get(DaySchedule, day_schedule_id)
        if day is None:
            return False
        # ORM cascade removes the hour windows on every backend
        await self.session.delete(day)
        await self.session.flush()
        return True

    @store_operation("get_hour_window")
    async def get_hour_window(self, window_id: int) -> Optional[HourWindow]:
        return await self.session.get(HourWindow, window_id)

    @store_operation("delete_hour_window")
    async def delete_hour_window(self, window_id: int) -> bool:
        window = await self.session.get(HourWindow, window_id)
        if window is None:
            return False
        day = await self.session.get(DaySchedule, window.day_schedule_id)
        if day is not None and window in day.hour_windows:
            # delete-orphan removes the row and keeps the loaded collection current
            day.hour_windows.remove(window)
        else:
            await self.session.delete(window)
        await self.session.flush()
        return True

    # Holds

    @store_operation("get_hold")
    async def get_hold(self, session_id: str) -> Optional[PendingHold]:
        result = await self.session.execute(
            select(PendingHold)
            .where(PendingHold.session_id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_operation("get_pending_hold")
    async def get_pending_hold(self, session_id: str) -> Optional[PendingHold]:
        result = await self.session.execute(
            select(PendingHold)
            .where(
                PendingHold.session_id == session_id,
                PendingHold.status == HoldStatus.PENDING.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_operation("count_active_holds")
    async def count_active_holds(
        self, venue_id: str, period_start: datetime, period_end: datetime, now: datetime
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(PendingHold)
            .where(
                PendingHold.venue_id == venue_id,
                PendingHold.status == HoldStatus.PENDING.value,
                PendingHold.expires_at > as_utc(now),
                PendingHold.created_at >= as_utc(period_start),
                PendingHold.created_at < as_utc(period_end),
            )
        )
        return result.scalar_one()

    @store_operation("update_hold_status")
    async def update_hold_status(self, session_id: str, from_status: str, to_status: str) -> int:
        result = await self.session.execute(
            update(PendingHold)
            .where(
                PendingHold.session_id == session_id,
                PendingHold.status == from_status,
            )
            .values(status=to_status)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    @store_operation("delete_hold")
    async def delete_hold(self, session_id: str) -> int:
        result = await self.session.execute(
            delete(PendingHold)
            .where(PendingHold.session_id == session_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    @store_operation("delete_expired_holds")
    async def delete_expired_holds(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(PendingHold)
            .where(PendingHold.expires_at < as_utc(now))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    # Sales

    @store_operation("get_sale")
    async def get_sale(self, session_id: str) -> Optional[ConfirmedSale]:
        result = await self.session.execute(
            select(ConfirmedSale).where(ConfirmedSale.session_id == session_id)
        )
        return result.scalar_one_or_none()

    @store_operation("count_confirmed_sales")
    async def count_confirmed_sales(self, venue_id: str, period_start: datetime, period_end: datetime) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(ConfirmedSale)
            .where(
                ConfirmedSale.venue_id == venue_id,
                ConfirmedSale.payment_status == "paid",
                ConfirmedSale.created_at >= as_utc(period_start),
                ConfirmedSale.created_at < as_utc(period_end),
            )
        )
        return result.scalar_one()

    @store_operation("list_sales")
    async def list_sales(
        self, filters: SaleFilters, offset: int, limit: int
    ) -> tuple[list[ConfirmedSale], int]:
        query = select(ConfirmedSale)
        if filters.venue_id:
            query = query.where(ConfirmedSale.venue_id == filters.venue_id)
        if filters.created_from is not None:
            query = query.where(ConfirmedSale.created_at >= as_utc(filters.created_from))
        if filters.created_to is not None:
            query = query.where(ConfirmedSale.created_at < as_utc(filters.created_to))
        if filters.payment_status:
            query = query.where(ConfirmedSale.payment_status == filters.payment_status)

        total = (await self.session.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await self.session.execute(
            query.order_by(ConfirmedSale.created_at.desc(), ConfirmedSale.session_id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # Audit

    @store_operation("append_audit_entry")
    async def append_audit_entry(self, entry: AuditLogEntry) -> None:
        self.session.add(entry)
        await self.session.flush()

    @store_operation("list_audit_entries")
    async def list_audit_entries(
        self, venue_id: Optional[str], session_id: Optional[str], offset: int, limit: int
    ) -> tuple[list[AuditLogEntry], int]:
        query = select(AuditLogEntry)
        if venue_id:
            query = query.where(AuditLogEntry.venue_id == venue_id)
        if session_id:
            query = query.where(AuditLogEntry.session_id == session_id)

        total = (await self.session.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await self.session.execute(
            query.order_by(AuditLogEntry.received_at.desc(), AuditLogEntry.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
