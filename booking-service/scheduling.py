import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from errors import NotFoundError, ValidationError
from intervals import DAYS, DayOfWeek, TimeRange, day_of_week, utc_now
from models import Instructor, RequestStatus
from repository import Repository
from slots import BusyInterval, free_slots_for_day

logger = logging.getLogger(__name__)


@dataclass
class DayAvailability:
    day: DayOfWeek
    date: date
    available_hours: List[TimeRange] = field(default_factory=list)


@dataclass
class InstructorWeek:
    instructor_id: str
    instructor_name: str
    weekly_hours: List[DayAvailability] = field(default_factory=list)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def week_bounds(value: date) -> Tuple[datetime, datetime]:
    """Sunday 00:00 and Saturday end-of-day of the week containing ``value``."""
    sunday = value - timedelta(days=day_of_week(value).index)
    return start_of_day(sunday), end_of_day(sunday + timedelta(days=6))


def next_week_start(now: datetime) -> date:
    today = now.astimezone(timezone.utc).date()
    return today + timedelta(days=7 - day_of_week(today).index)


class AvailabilityService:
    def __init__(self, repository: Repository, clock: Callable[[], datetime] = utc_now) -> None:
        self.repository = repository
        self.clock = clock

    # ---------- ONE DATE (confirmed lessons only) ----------
    async def available_hours_for_instructor(
        self,
        instructor_id: str,
        on: date,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[TimeRange]:
        instructor = await self.repository.get_instructor(instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor not found", details={"instructor_id": instructor_id})

        day = day_of_week(on)
        if not any(h.day == day for h in instructor.available_hours):
            logger.debug("Instructor %s does not work on %s", instructor_id, day.value)
            return []

        lessons = await self.repository.find_lessons(
            instructor_ids=[instructor_id],
            start_from=start_of_day(on),
            start_to=end_of_day(on),
        )
        busy = [
            BusyInterval.from_times(instructor_id, lesson.start_time, lesson.end_time).range
            for lesson in lessons
            if lesson.id != exclude_lesson_id
        ]
        return free_slots_for_day(day, instructor.available_hours, busy)

    # ---------- WEEK (lessons and pending requests, future weeks only) ----------
    async def weekly_availability(
        self,
        on: date,
        styles: Sequence[str],
        instructor_ids: Optional[Sequence[str]] = None,
    ) -> List[InstructorWeek]:
        earliest = next_week_start(self.clock())
        if on < earliest:
            raise ValidationError(
                f"Invalid date: date must be in a future week, at least the start "
                f"of next week ({earliest.isoformat()}).",
                details={"date": on.isoformat(), "earliest": earliest.isoformat()},
            )

        week_start, week_end = week_bounds(on)
        instructors = await self.repository.find_instructors(instructor_ids or None)
        ids = [i.id for i in instructors]

        lessons, pending = await asyncio.gather(
            self.repository.find_lessons(instructor_ids=ids, start_from=week_start, start_to=week_end),
            self.repository.find_requests(
                instructor_ids=ids,
                start_from=week_start,
                start_to=week_end,
                status=RequestStatus.PENDING,
            ),
        )
        busy = group_busy(
            BusyInterval.from_times(item.instructor_id, item.start_time, item.end_time)
            for item in [*lessons, *pending]
        )
        logger.debug(
            "Week %s: %d instructors, %d lessons, %d pending requests",
            week_start.date().isoformat(), len(instructors), len(lessons), len(pending),
        )

        return [self._instructor_week(i, week_start.date(), styles, busy) for i in instructors]

    @staticmethod
    def _instructor_week(
        instructor: Instructor,
        sunday: date,
        styles: Sequence[str],
        busy: Dict[Tuple[str, date], List[TimeRange]],
    ) -> InstructorWeek:
        report = InstructorWeek(instructor_id=instructor.id, instructor_name=instructor.name)
        if not instructor.teaches_any(list(styles)):
            # listed, but nothing is bookable
            logger.debug("Instructor %s teaches none of %s", instructor.id, list(styles))
            report.weekly_hours = [
                DayAvailability(day=day, date=sunday + timedelta(days=offset))
                for offset, day in enumerate(DAYS)
            ]
            return report

        working_days = set(instructor.working_days())
        for offset, day in enumerate(DAYS):
            if day not in working_days:
                continue
            current = sunday + timedelta(days=offset)
            slots = free_slots_for_day(day, instructor.available_hours, busy.get((instructor.id, current), []))
            report.weekly_hours.append(DayAvailability(day=day, date=current, available_hours=slots))
        return report


def group_busy(items: Iterable[BusyInterval]) -> Dict[Tuple[str, date], List[TimeRange]]:
    grouped: Dict[Tuple[str, date], List[TimeRange]] = defaultdict(list)
    for item in items:
        grouped[(item.instructor_id, item.date)].append(item.range)
    return grouped
