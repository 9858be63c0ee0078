from datetime import date, datetime, timedelta, timezone

from intervals import (
    DayOfWeek,
    TimeRange,
    clock_time,
    contains,
    day_of_week,
    overlaps,
    subtract,
)


def test_touching_ranges_do_not_overlap() -> None:
    assert not overlaps(TimeRange("09:00", "10:00"), TimeRange("10:00", "11:00"))
    assert not overlaps(TimeRange("10:00", "11:00"), TimeRange("09:00", "10:00"))


def test_overlap_catches_partial_and_full_containment() -> None:
    assert overlaps(TimeRange("09:00", "10:01"), TimeRange("10:00", "11:00"))
    assert overlaps(TimeRange("09:00", "12:00"), TimeRange("10:00", "11:00"))
    assert overlaps(TimeRange("10:00", "11:00"), TimeRange("09:00", "12:00"))
    assert overlaps(TimeRange("10:00", "11:00"), TimeRange("10:00", "10:30"))


def test_contains_is_inclusive_at_both_edges() -> None:
    outer = TimeRange("09:00", "17:00")
    assert contains(outer, TimeRange("09:00", "17:00"))
    assert contains(outer, TimeRange("12:00", "13:00"))
    assert not contains(outer, TimeRange("08:59", "10:00"))
    assert not contains(outer, TimeRange("16:00", "17:01"))


def test_subtract_merges_overlapping_busy_ranges() -> None:
    free = TimeRange("09:00", "17:00")
    busy = [TimeRange("10:00", "12:00"), TimeRange("11:00", "11:30"), TimeRange("11:30", "13:00")]
    assert subtract(free, busy) == [TimeRange("09:00", "10:00"), TimeRange("13:00", "17:00")]


def test_subtract_ignores_ranges_spilling_outside() -> None:
    free = TimeRange("09:00", "12:00")
    busy = [TimeRange("08:00", "10:00"), TimeRange("11:00", "13:00")]
    assert subtract(free, busy) == [free]


def test_day_of_week_starts_on_sunday() -> None:
    sunday = date(2030, 1, 13)
    assert day_of_week(sunday) is DayOfWeek.SUNDAY
    assert day_of_week(sunday + timedelta(days=6)) is DayOfWeek.SATURDAY
    assert DayOfWeek.SUNDAY.index == 0
    assert DayOfWeek.SATURDAY.index == 6


def test_clock_time_is_projected_in_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    assert clock_time(datetime(2030, 1, 14, 11, 30, tzinfo=plus_two)) == "09:30"
    assert clock_time(datetime(2030, 1, 14, 9, 5)) == "09:05"
