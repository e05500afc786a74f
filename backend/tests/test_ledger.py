"""
Tests for the reservation ledger including concurrency scenarios.

The seeded venue sells 3 slots per period on Monday 18:00-23:00 Melbourne
time; NOW is Monday 20:05 local, inside the 20:00-20:15 period.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from queueskip.core.exceptions import (
    ConfigurationMissingError,
    InconsistentStateError,
    InvalidRequestError,
    SoldOutError,
)
from queueskip.infrastructure.sql_store import SqlAlchemyReservationStore
from queueskip.models import ConfirmedSale, HoldStatus, PendingHold
from queueskip.services import ledger_service
from queueskip.services.availability_service import get_availability
from queueskip.services.ledger_service import ConfirmResult
from queueskip.services.periods import current_period
from queueskip.services.schedule_service import upsert_day_schedule

from tests.conftest import CUSTOMER, MELBOURNE, MONDAY, NOW


async def reserve(store, venue_id, session_id, now=NOW, ttl=None):
    period = current_period(now, MELBOURNE)
    return await ledger_service.reserve(
        store,
        venue_id=venue_id,
        session_id=session_id,
        customer=CUSTOMER,
        period_start=period.start,
        period_end=period.end,
        day_of_week=period.day_of_week,
        now=now,
        ttl=ttl,
    )


async def reserve_on_own_session(session_factory, venue_id, session_id):
    async with session_factory() as session:
        return await reserve(SqlAlchemyReservationStore(session), venue_id, session_id)


@pytest.mark.asyncio
async def test_concurrent_reservations_never_oversell(session_factory, venue_id):
    """Six buyers race for three slots: exactly three holds, three sold-out."""
    results = await asyncio.gather(
        *(reserve_on_own_session(session_factory, venue_id, f"cs_race_{i}") for i in range(6)),
        return_exceptions=True,
    )

    holds = [r for r in results if isinstance(r, PendingHold)]
    sold_out = [r for r in results if isinstance(r, SoldOutError)]
    assert len(holds) == 3
    assert len(sold_out) == 3
    assert all(e.capacity == 3 for e in sold_out)

    async with session_factory() as session:
        store = SqlAlchemyReservationStore(session)
        period = current_period(NOW, MELBOURNE)
        assert await store.count_active_holds(venue_id, period.start, period.end, NOW) == 3


@pytest.mark.asyncio
async def test_hold_fields(store, venue_id):
    hold = await reserve(store, venue_id, "cs_fields")
    assert hold.status == HoldStatus.PENDING.value
    assert hold.created_at == NOW
    assert hold.expires_at == NOW + timedelta(minutes=30)
    assert hold.amount_total == 2000


@pytest.mark.asyncio
async def test_cancel_releases_capacity(store, venue_id):
    for i in range(3):
        await reserve(store, venue_id, f"cs_{i}")
    with pytest.raises(SoldOutError):
        await reserve(store, venue_id, "cs_4")

    assert await ledger_service.cancel(store, "cs_1") is True
    hold = await reserve(store, venue_id, "cs_5")
    assert hold.session_id == "cs_5"

    cancelled = await store.get_hold("cs_1")
    assert cancelled.status == HoldStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_cancel_is_idempotent(store, venue_id):
    await reserve(store, venue_id, "cs_cancel")
    assert await ledger_service.cancel(store, "cs_cancel") is True
    assert await ledger_service.cancel(store, "cs_cancel") is False
    assert await ledger_service.cancel(store, "cs_never_created") is False


@pytest.mark.asyncio
async def test_expired_holds_do_not_count(store, venue_id):
    for i in range(3):
        await reserve(store, venue_id, f"cs_short_{i}", ttl=timedelta(seconds=1))

    # Two seconds later, same period, nothing swept
    later = NOW + timedelta(seconds=2)
    hold = await reserve(store, venue_id, "cs_after_expiry", now=later)
    assert hold.created_at == later
    assert await store.get_hold("cs_short_0") is not None


@pytest.mark.asyncio
async def test_retry_after_hold_expired_is_rejected(store, venue_id):
    await reserve(store, venue_id, "cs_lapsed", ttl=timedelta(seconds=1))

    with pytest.raises(InvalidRequestError):
        await reserve(store, venue_id, "cs_lapsed", now=NOW + timedelta(seconds=2))
    assert (await store.get_hold("cs_lapsed")).status == HoldStatus.PENDING.value


@pytest.mark.asyncio
async def test_confirm_is_idempotent(store, db_session, venue_id):
    await reserve(store, venue_id, "cs_paid")

    result, sale = await ledger_service.confirm(store, "cs_paid", now=NOW + timedelta(minutes=2))
    assert result is ConfirmResult.CONFIRMED
    assert sale.payment_status == "paid"
    assert sale.created_at == NOW

    result, again = await ledger_service.confirm(store, "cs_paid", now=NOW + timedelta(minutes=3))
    assert result is ConfirmResult.ALREADY_CONFIRMED
    assert again.session_id == "cs_paid"

    count = (await db_session.execute(select(func.count()).select_from(ConfirmedSale))).scalar_one()
    assert count == 1
    assert await store.get_hold("cs_paid") is None


@pytest.mark.asyncio
async def test_confirm_honours_lapsed_hold(store, venue_id):
    """Payment that clears after the hold timer ran out is still a sale in its period."""
    await reserve(store, venue_id, "cs_slow_payer", ttl=timedelta(seconds=1))

    result, sale = await ledger_service.confirm(store, "cs_slow_payer", now=NOW + timedelta(minutes=20))
    assert result is ConfirmResult.CONFIRMED

    period = current_period(NOW, MELBOURNE)
    assert await store.count_confirmed_sales(venue_id, period.start, period.end) == 1


@pytest.mark.asyncio
async def test_hold_survives_sweep_while_payment_is_open(store, venue_id):
    """A buyer still at the provider 20 minutes in keeps their hold through a sweep."""
    await reserve(store, venue_id, "cs_unhurried")

    await get_availability(store, venue_id, now=NOW + timedelta(minutes=19))
    assert await store.get_hold("cs_unhurried") is not None

    result, _ = await ledger_service.confirm(store, "cs_unhurried", now=NOW + timedelta(minutes=20))
    assert result is ConfirmResult.CONFIRMED


@pytest.mark.asyncio
async def test_confirmed_sales_count_toward_capacity(store, venue_id):
    for i in range(3):
        await reserve(store, venue_id, f"cs_sale_{i}")
        await ledger_service.confirm(store, f"cs_sale_{i}", now=NOW)

    with pytest.raises(SoldOutError):
        await reserve(store, venue_id, "cs_too_late")


@pytest.mark.asyncio
async def test_confirm_unknown_session_is_inconsistent(store, venue_id):
    with pytest.raises(InconsistentStateError) as exc_info:
        await ledger_service.confirm(store, "cs_ghost")
    assert exc_info.value.session_id == "cs_ghost"


@pytest.mark.asyncio
async def test_confirm_cancelled_hold_is_inconsistent(store, venue_id):
    await reserve(store, venue_id, "cs_declined")
    await ledger_service.cancel(store, "cs_declined")
    with pytest.raises(InconsistentStateError):
        await ledger_service.confirm(store, "cs_declined")


@pytest.mark.asyncio
async def test_inactive_day_is_not_available(store, venue_id):
    await upsert_day_schedule(store, venue_id, MONDAY, 3, is_active=False)
    with pytest.raises(ConfigurationMissingError):
        await reserve(store, venue_id, "cs_closed_day")


@pytest.mark.asyncio
async def test_outside_sale_hours_is_not_available(store, venue_id):
    morning = NOW - timedelta(hours=10)  # Monday 10:05 local
    with pytest.raises(ConfigurationMissingError) as exc_info:
        await reserve(store, venue_id, "cs_morning", now=morning)
    assert exc_info.value.reason == "outside sale hours"


@pytest.mark.asyncio
async def test_period_must_contain_now(store, venue_id):
    period = current_period(NOW + timedelta(minutes=15), MELBOURNE)
    with pytest.raises(InvalidRequestError):
        await ledger_service.reserve(
            store,
            venue_id=venue_id,
            session_id="cs_future",
            customer=CUSTOMER,
            period_start=period.start,
            period_end=period.end,
            day_of_week=period.day_of_week,
            now=NOW,
        )


@pytest.mark.asyncio
async def test_retry_with_same_session_returns_existing_hold(store, venue_id):
    first = await reserve(store, venue_id, "cs_retry")
    second = await reserve(store, venue_id, "cs_retry")
    assert second.id == first.id

    period = current_period(NOW, MELBOURNE)
    assert await store.count_active_holds(venue_id, period.start, period.end, NOW) == 1


@pytest.mark.asyncio
async def test_failed_inventory_check_row_never_counts(store, venue_id):
    await ledger_service.record_failed_inventory_check(store, venue_id, "cs_rejected", CUSTOMER, now=NOW)
    for i in range(3):
        await reserve(store, venue_id, f"cs_ok_{i}")

    assert (await store.get_hold("cs_rejected")).status == HoldStatus.FAILED_INVENTORY_CHECK.value
    assert await ledger_service.get_reservation_status(store, "cs_rejected", now=NOW) == "failed_inventory_check"


@pytest.mark.asyncio
async def test_reservation_status_lifecycle(store, venue_id):
    assert await ledger_service.get_reservation_status(store, "cs_status", now=NOW) == "unknown"

    await reserve(store, venue_id, "cs_status")
    assert await ledger_service.get_reservation_status(store, "cs_status", now=NOW) == "pending"
    later = NOW + timedelta(minutes=31)
    assert await ledger_service.get_reservation_status(store, "cs_status", now=later) == "expired"

    await ledger_service.confirm(store, "cs_status", now=later)
    assert await ledger_service.get_reservation_status(store, "cs_status", now=later) == "confirmed"
