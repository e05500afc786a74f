"""
Schedule configuration store: DaySchedule / HourWindow CRUD.

Rules enforced here, once, for every caller:
- One DaySchedule per (venue, day_of_week); writes are upserts.
- Hour windows on a day never overlap, so no moment is sold by two windows.
- Overnight windows (end < start) are split at midnight. The first half stays
  on its day as [start, 00:00); the second half goes on the following day as
  [00:00, end) and carries the first day's rate as its slot override, so both
  halves sell at the same configured rate. The following day is created (with
  the same rate and active flag) if it does not exist yet.

Mutations lock the DaySchedule row they touch, the same lock the ledger takes
before counting, so a rate change and a reservation never interleave.
"""

from dataclasses import dataclass
from datetime import time
from typing import Iterable, Optional

from queueskip.core.exceptions import InvalidRequestError, NotFoundError
from queueskip.core.logging import get_logger
from queueskip.models import DaySchedule, HourWindow
from queueskip.services.cache_service import (
    get_cached_schedule,
    invalidate_schedule,
    set_cached_schedule,
)
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.periods import (
    DAYS_IN_WEEK,
    MIDNIGHT,
    DaySnapshot,
    WindowSnapshot,
    snapshot_day,
)
from queueskip.services.venue_service import get_venue

logger = get_logger(__name__)


@dataclass(frozen=True)
class WeeklyScheduleEntry:
    day_of_week: int
    start_time: time
    end_time: time
    slots_per_period: int


def _validate_day_of_week(day_of_week: int) -> None:
    if not 0 <= day_of_week < DAYS_IN_WEEK:
        raise InvalidRequestError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")


def _validate_slots(slots: Optional[int], field_name: str) -> None:
    if slots is not None and slots < 0:
        raise InvalidRequestError(f"{field_name} must not be negative")


def _validate_window(start_time: time, end_time: time) -> None:
    if start_time == end_time and end_time != MIDNIGHT:
        raise InvalidRequestError("Hour window must not be empty")


def _is_overnight(start_time: time, end_time: time) -> bool:
    return end_time != MIDNIGHT and end_time < start_time


def _put_window(
    day: DaySchedule,
    start_time: time,
    end_time: time,
    custom_slots: Optional[int],
    existing: Optional[HourWindow] = None,
    match_start: bool = True,
) -> HourWindow:
    """
    Insert or update a same-day window on a loaded DaySchedule.
    Without `existing`, a window with the same start is updated in place
    unless match_start is False, in which case it counts as an overlap.
    """
    if existing is None and match_start:
        existing = next((w for w in day.hour_windows if w.start_time == start_time), None)

    candidate = WindowSnapshot(start_time=start_time, end_time=end_time)
    for other in day.hour_windows:
        if other is existing:
            continue
        current = WindowSnapshot(start_time=other.start_time, end_time=other.end_time)
        if candidate.start_seconds < current.end_seconds and current.start_seconds < candidate.end_seconds:
            raise InvalidRequestError(
                f"Window {start_time:%H:%M}-{end_time:%H:%M} overlaps "
                f"{other.start_time:%H:%M}-{other.end_time:%H:%M}"
            )

    if existing is not None:
        existing.start_time = start_time
        existing.end_time = end_time
        existing.custom_slots = custom_slots
        return existing

    window = HourWindow(start_time=start_time, end_time=end_time, custom_slots=custom_slots)
    day.hour_windows.append(window)
    return window


async def _upsert_day(
    store: ReservationStore,
    venue_id: str,
    day_of_week: int,
    slots_per_period: int,
    is_active: bool,
) -> DaySchedule:
    day = await store.get_day_schedule(venue_id, day_of_week, for_update=True)
    if day is None:
        day = DaySchedule(
            venue_id=venue_id,
            day_of_week=day_of_week,
            slots_per_period=slots_per_period,
            is_active=is_active,
            hour_windows=[],
        )
        if await store.insert_unique(day):
            return day
        # A concurrent upsert created the row first
        day = await store.get_day_schedule(venue_id, day_of_week, for_update=True)

    day.slots_per_period = slots_per_period
    day.is_active = is_active
    return day


async def _following_day(store: ReservationStore, day: DaySchedule) -> DaySchedule:
    next_day_of_week = (day.day_of_week + 1) % DAYS_IN_WEEK
    following = await store.get_day_schedule(day.venue_id, next_day_of_week, for_update=True)
    if following is not None:
        return following
    return await _upsert_day(store, day.venue_id, next_day_of_week, day.slots_per_period, bool(day.is_active))


def _put_morning_half(following: DaySchedule, end_time: time, rate: int) -> HourWindow:
    """
    Place the [00:00, end) half of an overnight window on the following day.
    Re-applying the same overnight window finds its own morning half and keeps
    it; any other window already starting at midnight is an overlap.
    """
    for window in following.hour_windows:
        if window.start_time == MIDNIGHT and window.end_time == end_time and window.custom_slots == rate:
            return window
    return _put_window(following, MIDNIGHT, end_time, rate, match_start=False)


async def _put_split_windows(
    store: ReservationStore,
    day: DaySchedule,
    start_time: time,
    end_time: time,
    custom_slots: Optional[int],
    existing: Optional[HourWindow] = None,
) -> list[HourWindow]:
    if not _is_overnight(start_time, end_time):
        return [_put_window(day, start_time, end_time, custom_slots, existing)]

    evening = _put_window(day, start_time, MIDNIGHT, custom_slots, existing)
    following = await _following_day(store, day)
    rate = custom_slots if custom_slots is not None else day.slots_per_period
    morning = _put_morning_half(following, end_time, rate)
    logger.info(
        "overnight_window_split",
        venue_id=day.venue_id,
        day_of_week=day.day_of_week,
        next_day_of_week=following.day_of_week,
        slots=rate,
    )
    return [evening, morning]


async def list_weekly_schedule(store: ReservationStore, venue_id: str) -> list[DaySchedule]:
    await get_venue(store, venue_id)
    return list(await store.list_day_schedules(venue_id))


async def load_schedule_snapshots(store: ReservationStore, venue_id: str) -> list[DaySnapshot]:
    """Read-through cached weekly schedule used by the availability calculator."""
    cached = await get_cached_schedule(venue_id)
    if cached is not None:
        return cached
    days = [snapshot_day(day) for day in await store.list_day_schedules(venue_id)]
    await set_cached_schedule(venue_id, days)
    return days


async def upsert_day_schedule(
    store: ReservationStore,
    venue_id: str,
    day_of_week: int,
    slots_per_period: int,
    is_active: bool = True,
) -> DaySchedule:
    _validate_day_of_week(day_of_week)
    _validate_slots(slots_per_period, "slots_per_period")

    async with store.transaction():
        await get_venue(store, venue_id)
        day = await _upsert_day(store, venue_id, day_of_week, slots_per_period, is_active)

    await invalidate_schedule(venue_id)
    logger.info(
        "day_schedule_upserted",
        venue_id=venue_id,
        day_of_week=day_of_week,
        slots_per_period=slots_per_period,
        is_active=is_active,
    )
    return day


async def upsert_hour_window(
    store: ReservationStore,
    day_schedule_id: int,
    start_time: time,
    end_time: time,
    custom_slots: Optional[int] = None,
    window_id: Optional[int] = None,
) -> list[HourWindow]:
    """
    Create or update a sale window. Without window_id the window is matched by
    its start time. Returns one window, or two when an overnight window was split.
    """
    _validate_window(start_time, end_time)
    _validate_slots(custom_slots, "custom_slots")

    async with store.transaction():
        day = await store.get_day_schedule_by_id(day_schedule_id, for_update=True)
        if day is None:
            raise NotFoundError(f"Day schedule {day_schedule_id} not found")

        existing = None
        if window_id is not None:
            existing = await store.get_hour_window(window_id)
            if existing is None or existing.day_schedule_id != day.id:
                raise NotFoundError(f"Hour window {window_id} not found")

        windows = await _put_split_windows(store, day, start_time, end_time, custom_slots, existing)
        venue_id = day.venue_id

    await invalidate_schedule(venue_id)
    logger.info(
        "hour_window_upserted",
        venue_id=venue_id,
        day_schedule_id=day_schedule_id,
        start_time=start_time.isoformat(),
        end_time=end_time.isoformat(),
        windows=len(windows),
    )
    return windows


async def toggle_day_active(store: ReservationStore, day_schedule_id: int, is_active: bool) -> DaySchedule:
    """Flip the sale gate for a day without touching its windows."""
    async with store.transaction():
        day = await store.get_day_schedule_by_id(day_schedule_id, for_update=True)
        if day is None:
            raise NotFoundError(f"Day schedule {day_schedule_id} not found")
        day.is_active = is_active

    await invalidate_schedule(day.venue_id)
    logger.info("day_schedule_toggled", day_schedule_id=day_schedule_id, is_active=is_active)
    return day


async def delete_day_schedule(store: ReservationStore, day_schedule_id: int) -> None:
    async with store.transaction():
        day = await store.get_day_schedule_by_id(day_schedule_id, for_update=True)
        if day is None:
            raise NotFoundError(f"Day schedule {day_schedule_id} not found")
        venue_id = day.venue_id
        await store.delete_day_schedule(day_schedule_id)

    await invalidate_schedule(venue_id)
    logger.info("day_schedule_deleted", day_schedule_id=day_schedule_id, venue_id=venue_id)


async def delete_hour_window(store: ReservationStore, window_id: int) -> None:
    async with store.transaction():
        window = await store.get_hour_window(window_id)
        if window is None:
            raise NotFoundError(f"Hour window {window_id} not found")
        day = await store.get_day_schedule_by_id(window.day_schedule_id, for_update=True)
        venue_id = day.venue_id
        await store.delete_hour_window(window_id)

    await invalidate_schedule(venue_id)
    logger.info("hour_window_deleted", window_id=window_id, venue_id=venue_id)


async def apply_weekly_schedule(
    store: ReservationStore,
    venue_id: str,
    entries: Iterable[WeeklyScheduleEntry],
) -> list[DaySchedule]:
    """
    Replace the windows of every listed day with the given ones, activating
    each day at the entry's rate. Days not listed are left alone (apart from
    receiving the morning half of an overnight entry).
    """
    entries = list(entries)
    for entry in entries:
        _validate_day_of_week(entry.day_of_week)
        _validate_slots(entry.slots_per_period, "slots_per_period")
        _validate_window(entry.start_time, entry.end_time)

    async with store.transaction():
        await get_venue(store, venue_id)

        touched: dict[int, DaySchedule] = {}
        for entry in entries:
            day = await _upsert_day(store, venue_id, entry.day_of_week, entry.slots_per_period, True)
            if entry.day_of_week not in touched:
                day.hour_windows.clear()
                touched[entry.day_of_week] = day

        for entry in entries:
            await _put_split_windows(
                store,
                touched[entry.day_of_week],
                entry.start_time,
                entry.end_time,
                entry.slots_per_period,
            )

        days = list(await store.list_day_schedules(venue_id))

    await invalidate_schedule(venue_id)
    logger.info("weekly_schedule_applied", venue_id=venue_id, entries=len(entries))
    return days
