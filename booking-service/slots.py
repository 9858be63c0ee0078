from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Sequence

from intervals import (
    DayOfWeek,
    TimeRange,
    WorkingInterval,
    clock_time,
    subtract,
    utc_date,
)


@dataclass(frozen=True)
class BusyInterval:
    """A range blocked by a lesson or a pending request on one date."""

    instructor_id: str
    date: date
    start: str
    end: str

    @classmethod
    def from_times(cls, instructor_id: str, start_time: datetime, end_time: datetime) -> "BusyInterval":
        return cls(
            instructor_id=instructor_id,
            date=utc_date(start_time),
            start=clock_time(start_time),
            end=clock_time(end_time),
        )

    @property
    def range(self) -> TimeRange:
        return TimeRange(self.start, self.end)


def free_slots(working: TimeRange, busy: Iterable[TimeRange]) -> List[TimeRange]:
    """Free sub-ranges of one working range.

    Busy ranges that start before or end after ``working`` are out of scope
    for this range and do not consume any of it.
    """
    return subtract(working, busy)


def free_slots_for_day(
    day: DayOfWeek,
    working_intervals: Sequence[WorkingInterval],
    busy: Iterable[TimeRange],
) -> List[TimeRange]:
    busy = list(busy)
    hours = sorted((w for w in working_intervals if w.day == day), key=lambda w: w.start)

    slots: List[TimeRange] = []
    for interval in hours:
        slots.extend(free_slots(interval.range, busy))
    return slots


def fits_in_slots(window: TimeRange, slots: Iterable[TimeRange]) -> bool:
    return any(slot.contains(window) for slot in slots)
