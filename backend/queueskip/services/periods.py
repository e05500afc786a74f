"""
Venue-local period and sale-window math.

All period boundaries are computed on the venue's wall clock through its IANA
zone and then converted back to UTC instants, so two venues asked at the same
UTC instant can land in different periods and different days.

Conventions:
- A period is a 15-minute slice [start, end) aligned to :00/:15/:30/:45 local.
- Hour windows are half-open [start, end). An end of 00:00 means midnight, so
  "22:00-00:00" sells until the end of the day and "00:00-00:00" is all day.
- Days are numbered 0=Sunday .. 6=Saturday.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from queueskip.core.exceptions import InvalidRequestError
from queueskip.core.timeutils import as_utc

PERIOD_MINUTES = 15
PERIOD = timedelta(minutes=PERIOD_MINUTES)
SECONDS_PER_DAY = 24 * 60 * 60
DAYS_IN_WEEK = 7
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MIDNIGHT = time(0, 0)


@dataclass(frozen=True)
class WindowSnapshot:
    start_time: time
    end_time: time
    custom_slots: Optional[int] = None

    @property
    def start_seconds(self) -> int:
        return seconds_of_day(self.start_time)

    @property
    def end_seconds(self) -> int:
        if self.end_time == MIDNIGHT:
            return SECONDS_PER_DAY
        return seconds_of_day(self.end_time)


@dataclass(frozen=True)
class DaySnapshot:
    day_of_week: int
    slots_per_period: int
    is_active: bool
    windows: tuple[WindowSnapshot, ...] = field(default_factory=tuple)

    def sorted_windows(self) -> list[WindowSnapshot]:
        return sorted(self.windows, key=lambda w: w.start_seconds)


@dataclass(frozen=True)
class Period:
    start: datetime  # UTC
    end: datetime  # UTC
    local_start: datetime
    day_of_week: int


def venue_zone(time_zone: str) -> ZoneInfo:
    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidRequestError(f"Unknown time zone: {time_zone}") from exc


def seconds_of_day(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def day_of_week(local: datetime) -> int:
    """Python counts Monday=0; the schedule counts Sunday=0."""
    return (local.weekday() + 1) % DAYS_IN_WEEK


def to_venue_local(moment: datetime, time_zone: str) -> datetime:
    return as_utc(moment).astimezone(venue_zone(time_zone))


def current_period(now: datetime, time_zone: str) -> Period:
    """
    The 15-minute period containing `now` on the venue's clock.

    astimezone() sets `fold` on the repeated hour after a DST fall-back and
    replace() keeps it, so flooring 02:05 (second occurrence) gives the second
    02:00, not the first. Adding PERIOD to the UTC start keeps periods
    contiguous across the transition.
    """
    local = to_venue_local(now, time_zone)
    floored = local.replace(
        minute=local.minute - local.minute % PERIOD_MINUTES,
        second=0,
        microsecond=0,
    )
    start = as_utc(floored)
    return Period(start=start, end=start + PERIOD, local_start=floored, day_of_week=day_of_week(floored))


def period_for_start(period_start: datetime, time_zone: str) -> Period:
    local = to_venue_local(period_start, time_zone)
    if local.minute % PERIOD_MINUTES or local.second or local.microsecond:
        raise InvalidRequestError("Period start must be aligned to a 15-minute boundary")
    start = as_utc(period_start)
    return Period(start=start, end=start + PERIOD, local_start=local, day_of_week=day_of_week(local))


def window_contains(window: WindowSnapshot, moment_seconds: int) -> bool:
    return window.start_seconds <= moment_seconds < window.end_seconds


def find_open_window(day: Optional[DaySnapshot], local: datetime) -> Optional[WindowSnapshot]:
    """Window containing the local wall-clock moment on an active day."""
    if day is None or not day.is_active:
        return None
    moment = seconds_of_day(local.time())
    for window in day.sorted_windows():
        if window_contains(window, moment):
            return window
    return None


def find_window_for_period(day: Optional[DaySnapshot], period: Period) -> Optional[WindowSnapshot]:
    """First window overlapping the period on the venue's wall clock."""
    if day is None or not day.is_active:
        return None
    start = seconds_of_day(period.local_start.time())
    end = start + PERIOD_MINUTES * 60
    for window in day.sorted_windows():
        if window.start_seconds < end and start < window.end_seconds:
            return window
    return None


def capacity_for(day: DaySnapshot, window: WindowSnapshot) -> int:
    if window.custom_slots is not None:
        return window.custom_slots
    return day.slots_per_period


def _format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def next_available(
    days: Iterable[DaySnapshot],
    local_now: datetime,
    current_window: Optional[WindowSnapshot] = None,
) -> Optional[dict]:
    """
    Next local (day, time) at which sales could be open.

    Search order: the next period inside the current window (when it is sold
    out), a later window today, then the first window of each following active
    day, wrapping for a full week. Returns None if nothing is scheduled.
    """
    by_day = {day.day_of_week: day for day in days}
    today = day_of_week(local_now)
    now_seconds = seconds_of_day(local_now.time())

    if current_window is not None:
        next_period_seconds = (now_seconds // (PERIOD_MINUTES * 60) + 1) * PERIOD_MINUTES * 60
        if next_period_seconds < current_window.end_seconds:
            hours, remainder = divmod(next_period_seconds, 3600)
            return {"day": DAY_NAMES[today], "time": f"{hours:02d}:{remainder // 60:02d}"}

    today_schedule = by_day.get(today)
    if today_schedule is not None and today_schedule.is_active:
        for window in today_schedule.sorted_windows():
            if window.start_seconds > now_seconds:
                return {"day": DAY_NAMES[today], "time": _format_time(window.start_time)}

    for offset in range(1, DAYS_IN_WEEK + 1):
        candidate = by_day.get((today + offset) % DAYS_IN_WEEK)
        if candidate is None or not candidate.is_active:
            continue
        windows = candidate.sorted_windows()
        if windows:
            return {"day": DAY_NAMES[candidate.day_of_week], "time": _format_time(windows[0].start_time)}

    return None


def snapshot_day(day) -> DaySnapshot:
    """Detach an ORM DaySchedule (with loaded windows) into an immutable snapshot."""
    return DaySnapshot(
        day_of_week=day.day_of_week,
        slots_per_period=day.slots_per_period,
        is_active=bool(day.is_active),
        windows=tuple(
            WindowSnapshot(start_time=w.start_time, end_time=w.end_time, custom_slots=w.custom_slots)
            for w in day.hour_windows
        ),
    )
