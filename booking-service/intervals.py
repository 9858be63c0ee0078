"""
Half-open time ranges and the day-of-week helpers the scheduler works with.

A range is ``[start, end)``: two ranges that only share an endpoint do not
overlap. Within one computation every value is either a zero-padded
``HH:MM`` string (lexically ordered) or an absolute datetime, never a mix.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List


class DayOfWeek(str, Enum):
    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def index(self) -> int:
        return DAYS.index(self)


DAYS: List[DayOfWeek] = list(DayOfWeek)


def day_of_week(value: date) -> DayOfWeek:
    # date.weekday() is Monday-first, the week here starts on Sunday
    return DAYS[(value.weekday() + 1) % 7]


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clock_time(value: datetime) -> str:
    """Project an absolute timestamp to its ``HH:MM`` clock time in UTC."""
    return ensure_utc(value).strftime("%H:%M")


def utc_date(value: datetime) -> date:
    return ensure_utc(value).date()


def ranges_overlap(start_a: Any, end_a: Any, start_b: Any, end_b: Any) -> bool:
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self, other)

    def contains(self, other: "TimeRange") -> bool:
        return contains(self, other)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class WorkingInterval:
    day: DayOfWeek
    start: str
    end: str

    @property
    def range(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    def to_dict(self) -> dict:
        return {"day": self.day.value, "start": self.start, "end": self.end}


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    return ranges_overlap(a.start, a.end, b.start, b.end)


def contains(outer: TimeRange, inner: TimeRange) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def subtract(free: TimeRange, busy: Iterable[TimeRange]) -> List[TimeRange]:
    """Remove ``busy`` from ``free`` and return what is left, in order.

    Only busy ranges lying entirely inside ``free`` are taken into account;
    a range that spills over either edge is ignored.
    """
    inside = sorted((b for b in busy if contains(free, b)), key=lambda b: (b.start, b.end))

    result: List[TimeRange] = []
    cursor = free.start
    for b in inside:
        if cursor < b.start:
            result.append(TimeRange(cursor, b.start))
        cursor = max(cursor, b.end)

    if cursor < free.end:
        result.append(TimeRange(cursor, free.end))
    return result
