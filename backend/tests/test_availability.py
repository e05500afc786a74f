"""
Tests for the availability calculator and the hold expiry sweeper.
"""

from datetime import timedelta

import pytest

from queueskip.services import ledger_service
from queueskip.services.availability_service import compute_availability, get_availability
from queueskip.services.periods import current_period
from queueskip.services.schedule_service import upsert_day_schedule
from queueskip.services.sweeper_service import sweep_expired

from tests.conftest import CUSTOMER, MELBOURNE, MONDAY, NOW


async def hold(store, venue_id, session_id, now=NOW, ttl=None):
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


@pytest.mark.asyncio
async def test_open_period_reports_full_capacity(store, venue_id):
    availability = await get_availability(store, venue_id, now=NOW)
    assert availability.is_open is True
    assert availability.capacity == 3
    assert availability.slots_remaining == 3
    assert availability.next_available is None
    assert availability.period.start == NOW - timedelta(minutes=5)


@pytest.mark.asyncio
async def test_holds_and_sales_reduce_remaining(store, venue_id):
    await hold(store, venue_id, "cs_a")
    await hold(store, venue_id, "cs_b")
    await ledger_service.confirm(store, "cs_b", now=NOW)

    availability = await get_availability(store, venue_id, now=NOW)
    assert availability.slots_remaining == 1


@pytest.mark.asyncio
async def test_sold_out_points_at_next_period(store, venue_id):
    for i in range(3):
        await hold(store, venue_id, f"cs_{i}")

    availability = await get_availability(store, venue_id, now=NOW)
    assert availability.is_open is True
    assert availability.slots_remaining == 0
    assert availability.next_available == {"day": "Monday", "time": "20:15"}


@pytest.mark.asyncio
async def test_next_period_starts_fresh(store, venue_id):
    for i in range(3):
        await hold(store, venue_id, f"cs_{i}")

    availability = await get_availability(store, venue_id, now=NOW + timedelta(minutes=10))
    assert availability.slots_remaining == 3


@pytest.mark.asyncio
async def test_inactive_monday_is_closed_regardless_of_windows(store, venue_id):
    await upsert_day_schedule(store, venue_id, MONDAY, 3, is_active=False)

    availability = await get_availability(store, venue_id, now=NOW)
    assert availability.is_open is False
    assert availability.slots_remaining == 0
    assert availability.next_available == {"day": "Wednesday", "time": "12:00"}


@pytest.mark.asyncio
async def test_closed_before_window_opens(store, venue_id):
    morning = NOW - timedelta(hours=10)  # Monday 10:05 local
    availability = await get_availability(store, venue_id, now=morning)
    assert availability.is_open is False
    assert availability.next_available == {"day": "Monday", "time": "18:00"}


@pytest.mark.asyncio
async def test_expired_hold_not_counted_without_sweep(store, venue_id):
    """A hold expiring after 1s stops counting 2s later, before any sweep."""
    await hold(store, venue_id, "cs_brief", ttl=timedelta(seconds=1))
    later = NOW + timedelta(seconds=2)

    async with store.transaction():
        venue = await store.get_venue(venue_id)
        availability = await compute_availability(store, venue, now=later)
    assert availability.slots_remaining == 3
    assert await store.get_hold("cs_brief") is not None

    availability = await get_availability(store, venue_id, now=later)
    assert availability.slots_remaining == 3
    assert await store.get_hold("cs_brief") is None


@pytest.mark.asyncio
async def test_sweep_deletes_only_expired_holds(store, venue_id):
    await hold(store, venue_id, "cs_expiring", ttl=timedelta(seconds=30))
    await hold(store, venue_id, "cs_live")

    async with store.transaction():
        deleted = await sweep_expired(store, now=NOW + timedelta(minutes=1))
    assert deleted == 1
    assert await store.get_hold("cs_expiring") is None
    assert await store.get_hold("cs_live") is not None

    async with store.transaction():
        assert await sweep_expired(store, now=NOW + timedelta(minutes=1)) == 0
