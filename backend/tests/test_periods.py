"""
Tests for venue-local period math, sale windows and next-available search.
"""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from queueskip.core.exceptions import InvalidRequestError
from queueskip.services.periods import (
    PERIOD,
    DaySnapshot,
    WindowSnapshot,
    current_period,
    find_open_window,
    find_window_for_period,
    next_available,
    period_for_start,
    venue_zone,
)

MELBOURNE = "Australia/Melbourne"
NEW_YORK = "America/New_York"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_period_floors_to_quarter_hour():
    period = current_period(utc(2026, 10, 19, 9, 7, 42), MELBOURNE)
    assert period.start == utc(2026, 10, 19, 9, 0)
    assert period.end == utc(2026, 10, 19, 9, 15)
    assert period.local_start.hour == 20 and period.local_start.minute == 0
    assert period.day_of_week == 1  # Monday


@pytest.mark.parametrize(
    "transition",
    [
        utc(2026, 4, 4, 16, 0),  # Melbourne falls back 03:00 AEDT -> 02:00 AEST
        utc(2026, 10, 3, 16, 0),  # Melbourne springs forward 02:00 AEST -> 03:00 AEDT
    ],
)
def test_periods_contiguous_across_dst(transition):
    """Every UTC quarter hour around the transition is exactly one period."""
    moment = transition - timedelta(hours=2)
    previous = None
    while moment < transition + timedelta(hours=2):
        period = current_period(moment + timedelta(minutes=7), MELBOURNE)
        assert period.start == moment
        assert period.end - period.start == PERIOD
        if previous is not None:
            assert previous.end == period.start
        previous = period
        moment += PERIOD


def test_repeated_hour_keeps_second_occurrence():
    first = current_period(utc(2026, 4, 4, 15, 5), MELBOURNE)
    second = current_period(utc(2026, 4, 4, 16, 5), MELBOURNE)
    # Both read 02:00 on the wall clock, one hour apart in real time
    assert first.local_start.replace(tzinfo=None) == second.local_start.replace(tzinfo=None)
    assert second.start - first.start == timedelta(hours=1)


def test_same_instant_differs_by_venue_zone():
    """07:30Z on 2026-03-08 is 03:30 EDT (just after NY springs forward) and 18:30 AEDT."""
    instant = utc(2026, 3, 8, 7, 30)
    new_york = current_period(instant, NEW_YORK)
    melbourne = current_period(instant, MELBOURNE)

    assert new_york.start == melbourne.start == instant
    assert (new_york.local_start.hour, new_york.local_start.minute) == (3, 30)
    assert (melbourne.local_start.hour, melbourne.local_start.minute) == (18, 30)
    assert new_york.day_of_week == melbourne.day_of_week == 0  # Sunday

    evening = DaySnapshot(0, 4, True, (WindowSnapshot(time(18, 0), time(23, 0)),))
    assert find_window_for_period(evening, melbourne) is not None
    assert find_window_for_period(evening, new_york) is None


def test_new_york_gap_does_not_skip_a_period():
    before = current_period(utc(2026, 3, 8, 6, 59), NEW_YORK)
    after = current_period(utc(2026, 3, 8, 7, 0), NEW_YORK)
    assert (before.local_start.hour, before.local_start.minute) == (1, 45)
    assert (after.local_start.hour, after.local_start.minute) == (3, 0)
    assert before.end == after.start


def test_period_for_start_rejects_unaligned_start():
    with pytest.raises(InvalidRequestError):
        period_for_start(utc(2026, 10, 19, 9, 5), MELBOURNE)


def test_unknown_time_zone_rejected():
    with pytest.raises(InvalidRequestError):
        venue_zone("Mars/Olympus_Mons")


def local(hour: int, minute: int = 0, day: int = 19) -> datetime:
    """Wall-clock time in Melbourne; 2026-10-19 is a Monday."""
    return datetime(2026, 10, day, hour, minute, tzinfo=ZoneInfo(MELBOURNE))


def test_windows_are_half_open():
    day = DaySnapshot(1, 3, True, (
        WindowSnapshot(time(18, 0), time(20, 0)),
        WindowSnapshot(time(20, 0), time(22, 0), custom_slots=1),
    ))
    assert find_open_window(day, local(18, 0)).start_time == time(18, 0)
    assert find_open_window(day, local(19, 59)).start_time == time(18, 0)
    # 20:00 belongs to the second window only
    assert find_open_window(day, local(20, 0)).custom_slots == 1
    assert find_open_window(day, local(22, 0)) is None


def test_midnight_end_sells_until_end_of_day():
    late = DaySnapshot(1, 3, True, (WindowSnapshot(time(22, 0), time(0, 0)),))
    all_day = DaySnapshot(1, 3, True, (WindowSnapshot(time(0, 0), time(0, 0)),))
    assert find_open_window(late, local(23, 59)) is not None
    assert find_open_window(late, local(21, 59)) is None
    assert find_open_window(all_day, local(0, 0)) is not None
    assert find_open_window(all_day, local(12, 30)) is not None


def test_inactive_day_has_no_open_window():
    day = DaySnapshot(1, 3, False, (WindowSnapshot(time(0, 0), time(0, 0)),))
    assert find_open_window(day, local(12, 0)) is None


WEEK = [
    DaySnapshot(1, 3, True, (WindowSnapshot(time(18, 0), time(23, 0)),)),  # Monday
    DaySnapshot(2, 3, False, (WindowSnapshot(time(18, 0), time(23, 0)),)),  # Tuesday, off
    DaySnapshot(3, 5, True, (WindowSnapshot(time(12, 0), time(14, 0)),)),  # Wednesday
]


def test_next_available_later_today():
    assert next_available(WEEK, local(10, 0)) == {"day": "Monday", "time": "18:00"}


def test_next_available_skips_inactive_day():
    assert next_available(WEEK, local(23, 30)) == {"day": "Wednesday", "time": "12:00"}


def test_next_available_next_period_when_sold_out():
    window = WEEK[0].windows[0]
    assert next_available(WEEK, local(20, 5), current_window=window) == {"day": "Monday", "time": "20:15"}


def test_next_available_wraps_the_week():
    # Thursday 2026-10-22 -> next Monday
    assert next_available(WEEK, local(9, 0, day=22)) == {"day": "Monday", "time": "18:00"}


def test_next_available_last_period_of_window_moves_on():
    window = WEEK[0].windows[0]
    assert next_available(WEEK, local(22, 50), current_window=window) == {"day": "Wednesday", "time": "12:00"}


def test_next_available_none_without_schedule():
    assert next_available([], local(12, 0)) is None
    assert next_available([DaySnapshot(1, 3, False, ())], local(12, 0)) is None
