"""
Availability calculator.

Answers "can this venue sell right now, and how many slots are left in the
current 15-minute period?" for display surfaces and as the advisory pre-check
of the purchase flow. It is never the gate against overselling; the ledger's
locked count is.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from queueskip.core.logging import get_logger
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.models import Venue
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.periods import (
    Period,
    capacity_for,
    current_period,
    find_open_window,
    next_available,
    to_venue_local,
)
from queueskip.services.schedule_service import load_schedule_snapshots
from queueskip.services.sweeper_service import sweep_expired
from queueskip.services.venue_service import get_venue

logger = get_logger(__name__)


@dataclass(frozen=True)
class Availability:
    venue_id: str
    slots_remaining: int
    is_open: bool
    next_available: Optional[dict]
    capacity: int
    period: Period


async def compute_availability(
    store: ReservationStore,
    venue: Venue,
    now: Optional[datetime] = None,
) -> Availability:
    """
    Capacity view for the period containing `now`.

    Consumed = paid sales created in the period + pending holds created in the
    period that have not expired. Expired holds are excluded by the count
    itself whether or not the sweeper has deleted them yet.
    """
    now = as_utc(now or utcnow())
    period = current_period(now, venue.time_zone)
    local_now = to_venue_local(now, venue.time_zone)

    days = await load_schedule_snapshots(store, venue.id)
    today = next((d for d in days if d.day_of_week == period.day_of_week), None)
    window = find_open_window(today, local_now)

    capacity = 0
    slots_remaining = 0
    if window is not None:
        capacity = capacity_for(today, window)
        confirmed = await store.count_confirmed_sales(venue.id, period.start, period.end)
        pending = await store.count_active_holds(venue.id, period.start, period.end, now)
        slots_remaining = max(0, capacity - confirmed - pending)

    is_open = window is not None
    upcoming = None
    if not is_open or slots_remaining == 0:
        upcoming = next_available(days, local_now, current_window=window)

    return Availability(
        venue_id=venue.id,
        slots_remaining=slots_remaining,
        is_open=is_open,
        next_available=upcoming,
        capacity=capacity,
        period=period,
    )


async def get_availability(
    store: ReservationStore,
    venue_id: str,
    now: Optional[datetime] = None,
) -> Availability:
    """Sweep expired holds, then compute the live view for one venue."""
    now = as_utc(now or utcnow())
    async with store.transaction():
        await sweep_expired(store, now)
        venue = await get_venue(store, venue_id)
        availability = await compute_availability(store, venue, now)

    logger.debug(
        "availability_computed",
        venue_id=venue_id,
        slots_remaining=availability.slots_remaining,
        is_open=availability.is_open,
    )
    return availability


async def list_availability(store: ReservationStore, now: Optional[datetime] = None) -> list[Availability]:
    """Availability for every venue, for listing pages."""
    now = as_utc(now or utcnow())
    async with store.transaction():
        await sweep_expired(store, now)
        venues = await store.list_venues()
        return [await compute_availability(store, venue, now) for venue in venues]
