"""
Reservation ledger: the only writer of pending holds and confirmed sales.

CONCURRENCY STRATEGY: Pessimistic lock on the schedule row
==========================================================

Problem:
  Capacity is not a stored counter. It is "slots configured for the period
  minus paid sales minus live holds", recomputed from rows on every request.
  Two checkouts for the last slot both count 2/3, both insert, and the
  period ends up with 4 holds.

Solution:
  Every reservation for a venue+day serialises on that day's DaySchedule row.

  1. Fail fast if the day has no active schedule
  2. SELECT ... FOR UPDATE on the DaySchedule row, re-check is_active
  3. COUNT paid sales created in [period_start, period_end)
  4. COUNT pending holds created in the period with expires_at > now
  5. If confirmed + pending >= capacity: roll back, raise SoldOutError
  6. INSERT the pending hold, COMMIT (releases the lock)

  The second transaction blocks at step 2 until the first commits, then
  counts a table that already contains the first hold. Different venues, or
  the same venue on different days, lock different rows and never wait on
  each other. Locking in-process would not help across server instances.

  This needs READ COMMITTED on PostgreSQL (the default): the counts must see
  rows committed while we waited for the lock.

Why not the optimistic version counter used for stored seat counters:
  there is no single counter row to compare-and-swap, capacity depends on the
  hold expiry clock, and a retry storm on the last slot of a busy period is
  exactly the load pattern we expect.

Promotion and cancellation need no lock: confirmed_sales is keyed by the
payment session id, so a duplicate promotion is rejected by the primary key,
and a status update only ever moves a hold out of 'pending'.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from queueskip.core.config import get_settings
from queueskip.core.exceptions import (
    ConfigurationMissingError,
    InconsistentStateError,
    InvalidRequestError,
    NotFoundError,
    SoldOutError,
)
from queueskip.core.logging import get_logger
from queueskip.core.metrics import record_reservation_attempt, reservation_latency
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.models import ConfirmedSale, HoldStatus, PendingHold
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.periods import (
    capacity_for,
    find_window_for_period,
    period_for_start,
    snapshot_day,
)

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class CustomerInfo:
    email: str
    name: str
    amount_total: int  # minor units
    receive_promo: bool = False


class ConfirmResult(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_CONFIRMED = "already_confirmed"


def hold_ttl() -> timedelta:
    return timedelta(minutes=settings.HOLD_TTL_MINUTES)


async def reserve(
    store: ReservationStore,
    venue_id: str,
    session_id: str,
    customer: CustomerInfo,
    period_start: datetime,
    period_end: datetime,
    day_of_week: int,
    now: Optional[datetime] = None,
    ttl: Optional[timedelta] = None,
) -> PendingHold:
    """
    Atomically reserve one slot in the period as a pending hold.

    The hold is created at `now`, which must fall inside the period, and
    expires at now + ttl (HOLD_TTL_MINUTES by default). Retrying with the same
    session id returns the existing pending hold while it is live.

    Raises:
        SoldOutError: capacity for the period is fully committed
        ConfigurationMissingError: no active schedule or no sale window for the period
        TransientStoreError: storage failure; nothing was written
    """
    now = as_utc(now or utcnow())
    period_start = as_utc(period_start)
    period_end = as_utc(period_end)
    expires_at = now + (ttl or hold_ttl())

    if not period_start <= now < period_end:
        raise InvalidRequestError("Reservations can only be made for the current period")

    started = time.perf_counter()
    try:
        async with store.transaction():
            # Step 1: cheap rejection before taking the lock
            day = await store.get_day_schedule(venue_id, day_of_week)
            if day is None or not day.is_active:
                raise ConfigurationMissingError(venue_id)

            existing = await store.get_hold(session_id)
            if existing is not None:
                if existing.status != HoldStatus.PENDING.value:
                    raise InvalidRequestError(f"Payment session {session_id} was already used")
                if as_utc(existing.expires_at) <= now:
                    # Expired holds no longer count toward capacity
                    raise InvalidRequestError(f"Hold for payment session {session_id} has expired")
                logger.info("reservation_replayed", session_id=session_id, venue_id=venue_id)
                return existing

            venue = await store.get_venue(venue_id)
            if venue is None:
                raise NotFoundError(f"Venue {venue_id} not found")
            period = period_for_start(period_start, venue.time_zone)
            if period.end != period_end or period.day_of_week != day_of_week:
                raise InvalidRequestError("Period does not match the venue's local 15-minute grid")

            # Step 2: serialise on the venue+day row
            locked = await store.get_day_schedule(venue_id, day_of_week, for_update=True)
            if locked is None or not locked.is_active:
                raise ConfigurationMissingError(venue_id)

            snapshot = snapshot_day(locked)
            window = find_window_for_period(snapshot, period)
            if window is None:
                raise ConfigurationMissingError(venue_id, reason="outside sale hours")
            capacity = capacity_for(snapshot, window)

            # Steps 3-4: count under the lock
            confirmed_count = await store.count_confirmed_sales(venue_id, period_start, period_end)
            pending_count = await store.count_active_holds(venue_id, period_start, period_end, now)

            # Step 5
            if confirmed_count + pending_count >= capacity:
                raise SoldOutError(venue_id, period_start=period_start, capacity=capacity)

            # Step 6
            hold = PendingHold(
                session_id=session_id,
                venue_id=venue_id,
                customer_email=customer.email,
                customer_name=customer.name,
                amount_total=customer.amount_total,
                receive_promo=customer.receive_promo,
                status=HoldStatus.PENDING.value,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            await store.add(hold)
    except SoldOutError:
        record_reservation_attempt("sold_out")
        logger.warning(
            "reservation_sold_out",
            venue_id=venue_id,
            session_id=session_id,
            period_start=period_start.isoformat(),
        )
        raise
    except ConfigurationMissingError as exc:
        record_reservation_attempt("not_available")
        logger.info("reservation_not_available", venue_id=venue_id, reason=exc.reason)
        raise
    except Exception:
        record_reservation_attempt("error")
        raise
    finally:
        reservation_latency.observe(time.perf_counter() - started)

    record_reservation_attempt("success")
    logger.info(
        "reservation_created",
        venue_id=venue_id,
        session_id=session_id,
        period_start=period_start.isoformat(),
        confirmed=confirmed_count,
        pending=pending_count + 1,
        capacity=capacity,
        expires_at=expires_at.isoformat(),
    )
    return hold


async def record_failed_inventory_check(
    store: ReservationStore,
    venue_id: str,
    session_id: str,
    customer: CustomerInfo,
    now: Optional[datetime] = None,
) -> Optional[PendingHold]:
    """
    Keep a non-counting hold row for a checkout session whose reservation was
    rejected after the session had been created, so a late payment for it is
    traceable.
    """
    now = as_utc(now or utcnow())
    hold = PendingHold(
        session_id=session_id,
        venue_id=venue_id,
        customer_email=customer.email,
        customer_name=customer.name,
        amount_total=customer.amount_total,
        receive_promo=customer.receive_promo,
        status=HoldStatus.FAILED_INVENTORY_CHECK.value,
        expires_at=now + hold_ttl(),
        created_at=now,
        updated_at=now,
    )
    async with store.transaction():
        inserted = await store.insert_unique(hold)

    if not inserted:
        return None
    logger.info("reservation_failed_inventory_check", venue_id=venue_id, session_id=session_id)
    return hold


async def confirm(
    store: ReservationStore,
    session_id: str,
    now: Optional[datetime] = None,
) -> tuple[ConfirmResult, ConfirmedSale]:
    """
    Promote the pending hold for a paid session into a confirmed sale.

    Expiry is ignored: a hold whose timer lapsed moments before the payment
    cleared is still honoured, since the money has moved. Safe to call any
    number of times for the same session.

    Raises:
        InconsistentStateError: neither a pending hold nor a sale exists
    """
    now = as_utc(now or utcnow())

    async with store.transaction():
        sale = await store.get_sale(session_id)
        if sale is not None:
            # Duplicate delivery; clear any hold left behind by an earlier partial run
            await store.delete_hold(session_id)
            logger.info("hold_confirm_duplicate", session_id=session_id)
            return ConfirmResult.ALREADY_CONFIRMED, sale

        hold = await store.get_pending_hold(session_id)
        if hold is None:
            other = await store.get_hold(session_id)
            logger.error(
                "hold_confirm_inconsistent_state",
                session_id=session_id,
                hold_status=other.status if other is not None else None,
            )
            raise InconsistentStateError(session_id)

        expired = as_utc(hold.expires_at) <= now
        sale = ConfirmedSale(
            session_id=session_id,
            venue_id=hold.venue_id,
            customer_email=hold.customer_email,
            customer_name=hold.customer_name,
            amount_total=hold.amount_total,
            receive_promo=hold.receive_promo,
            payment_status="paid",
            created_at=as_utc(hold.created_at),
            confirmed_at=now,
        )
        inserted = await store.insert_unique(sale)
        await store.delete_hold(session_id)

        if not inserted:
            # A concurrent delivery of the same event promoted it first
            existing = await store.get_sale(session_id)
            logger.info("hold_confirm_duplicate", session_id=session_id, raced=True)
            return ConfirmResult.ALREADY_CONFIRMED, existing

    logger.info(
        "hold_confirmed",
        session_id=session_id,
        venue_id=sale.venue_id,
        expired_before_payment=expired,
    )
    return ConfirmResult.CONFIRMED, sale


async def cancel(
    store: ReservationStore,
    session_id: str,
    status: HoldStatus = HoldStatus.CANCELLED,
) -> bool:
    """
    Move a pending hold to a terminal status so it stops counting immediately.
    The row is kept for audit. Returns False when there was no pending hold
    (already cancelled, already confirmed, swept, or never created).
    """
    async with store.transaction():
        updated = await store.update_hold_status(session_id, HoldStatus.PENDING.value, status.value)

    if updated:
        logger.info("hold_cancelled", session_id=session_id, status=status.value)
        return True
    logger.info("hold_cancel_noop", session_id=session_id)
    return False


async def get_reservation_status(
    store: ReservationStore,
    session_id: str,
    now: Optional[datetime] = None,
) -> str:
    """confirmed | pending | expired | cancelled | failed_inventory_check | unknown"""
    now = as_utc(now or utcnow())
    async with store.transaction():
        if await store.get_sale(session_id) is not None:
            return "confirmed"
        hold = await store.get_hold(session_id)

    if hold is None:
        return "unknown"
    if hold.status == HoldStatus.PENDING.value and as_utc(hold.expires_at) <= now:
        return "expired"
    return hold.status
