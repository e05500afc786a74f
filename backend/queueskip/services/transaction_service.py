"""
Read-only reporting over confirmed sales and the payment audit log.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from queueskip.core.config import get_settings
from queueskip.core.exceptions import InvalidRequestError
from queueskip.models import AuditLogEntry, ConfirmedSale
from queueskip.services.interfaces.store import ReservationStore, SaleFilters

settings = get_settings()


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc)


def _page_bounds(page: int, page_size: int) -> tuple[int, int]:
    if page < 1:
        raise InvalidRequestError("page must be 1 or greater")
    if not 1 <= page_size <= settings.TRANSACTIONS_PAGE_SIZE_MAX:
        raise InvalidRequestError(
            f"page_size must be between 1 and {settings.TRANSACTIONS_PAGE_SIZE_MAX}"
        )
    return (page - 1) * page_size, page_size


async def list_transactions(
    store: ReservationStore,
    venue_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    payment_status: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ConfirmedSale], int]:
    """
    Confirmed sales, newest first.
    Dates are whole UTC days: end_date is included up to its last instant.
    """
    if start_date and end_date and end_date < start_date:
        raise InvalidRequestError("end_date must not be before start_date")
    offset, limit = _page_bounds(page, page_size)

    filters = SaleFilters(
        venue_id=venue_id,
        created_from=_start_of_day(start_date) if start_date else None,
        created_to=_start_of_day(end_date + timedelta(days=1)) if end_date else None,
        payment_status=payment_status,
    )
    async with store.transaction():
        return await store.list_sales(filters, offset, limit)


async def list_audit_log(
    store: ReservationStore,
    venue_id: Optional[str] = None,
    session_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AuditLogEntry], int]:
    offset, limit = _page_bounds(page, page_size)
    async with store.transaction():
        return await store.list_audit_entries(venue_id, session_id, offset, limit)
