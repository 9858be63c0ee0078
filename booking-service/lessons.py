import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from admission import AdmissionControl
from errors import NotFoundError, SchedulingError
from intervals import DAYS, DayOfWeek, day_of_week, ensure_utc, utc_date, utc_now
from models import VISIBLE_TYPES, Lesson, LessonProposal, Student
from repository import Repository
from scheduling import next_week_start, start_of_day, week_bounds

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("instructor_id", "student_ids", "style", "type", "start_time", "end_time")

# a student may cancel only lessons starting after this many days
CANCEL_NOTICE_DAYS = 2


@dataclass
class LessonEntry:
    lesson: Lesson
    editable: bool = False
    deletable: bool = False
    assignable: bool = False
    cancelable: bool = False


@dataclass
class DayLessons:
    day: DayOfWeek
    date: date
    editable: bool = False
    lessons: List[LessonEntry] = field(default_factory=list)


def empty_week(sunday: date) -> List[DayLessons]:
    return [DayLessons(day=day, date=sunday + timedelta(days=offset)) for offset, day in enumerate(DAYS)]


class LessonService:
    def __init__(
        self,
        repository: Repository,
        admission: AdmissionControl,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.admission = admission
        self.clock = clock

    async def admit_lesson(self, proposal: LessonProposal) -> Lesson:
        try:
            await self.admission.admit_lesson(proposal)
        except SchedulingError as exc:
            logger.info("Lesson rejected for instructor %s: %s", proposal.instructor_id, exc.message)
            raise

        lesson = await self.repository.save_lesson(
            Lesson(
                instructor_id=proposal.instructor_id,
                student_ids=list(proposal.student_ids),
                style=proposal.style,
                type=proposal.type,
                start_time=ensure_utc(proposal.start_time),
                end_time=ensure_utc(proposal.end_time),
            )
        )
        logger.info("Lesson %s created for instructor %s", lesson.id, lesson.instructor_id)
        return lesson

    async def update_lesson(self, lesson_id: str, changes: Dict[str, Any]) -> Lesson:
        existing = await self.repository.get_lesson(lesson_id)
        if existing is None:
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})

        patch = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        for key in ("start_time", "end_time"):
            if key in patch:
                patch[key] = ensure_utc(patch[key])
        merged = existing.merged(**patch)

        try:
            await self.admission.admit_update(existing, merged, list(patch))
        except SchedulingError as exc:
            logger.info("Update of lesson %s rejected: %s", lesson_id, exc.message)
            raise

        lesson = await self.repository.save_lesson(merged)
        logger.info("Lesson %s updated (%s)", lesson_id, ", ".join(sorted(patch)) or "no changes")
        return lesson

    async def remove_lesson(self, lesson_id: str) -> None:
        if not await self.repository.delete_lesson(lesson_id):
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})
        logger.info("Lesson %s removed", lesson_id)

    async def get_lesson(self, lesson_id: str) -> Lesson:
        lesson = await self.repository.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})
        return lesson

    async def list_lessons(
        self,
        page: int = 1,
        limit: int = 10,
        instructor_id: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Tuple[List[Lesson], int]:
        return await self.repository.list_lessons(
            offset=(page - 1) * limit, limit=limit, instructor_id=instructor_id, style=style
        )

    # ---------- WEEKLY VIEWS ----------
    async def weekly_lessons(
        self,
        on: date,
        instructor_id: Optional[str] = None,
        own_only: bool = False,
    ) -> List[DayLessons]:
        """Lessons of the Sunday..Saturday week of ``on``, flagged for ``instructor_id``."""
        working_days: List[DayOfWeek] = []
        if instructor_id is not None:
            instructor = await self.repository.get_instructor(instructor_id)
            if instructor is None:
                raise NotFoundError("Instructor not found", details={"instructor_id": instructor_id})
            working_days = instructor.working_days()

        week_start, week_end = week_bounds(on)
        lessons = await self.repository.find_lessons(
            instructor_ids=[instructor_id] if own_only and instructor_id else None,
            start_from=week_start,
            start_to=week_end,
        )

        today = utc_date(self.clock())
        week = empty_week(week_start.date())
        for day in week:
            day.editable = day.date > today and day.day in working_days

        for lesson in lessons:
            own = lesson.instructor_id == instructor_id
            upcoming = lesson.start_time > start_of_day(today)
            week[day_of_week(utc_date(lesson.start_time)).index].lessons.append(
                LessonEntry(lesson=lesson, editable=own and upcoming, deletable=own and upcoming)
            )
        return week

    async def student_weekly_lessons(
        self,
        on: date,
        student_id: str,
        instructor_ids: Optional[Sequence[str]] = None,
    ) -> List[DayLessons]:
        student = await self.repository.get_student(student_id)
        if student is None:
            raise NotFoundError("Student not found", details={"student_id": student_id})

        week_start, week_end = week_bounds(on)
        lessons = await self.repository.find_lessons(
            instructor_ids=list(instructor_ids) if instructor_ids else None,
            start_from=week_start,
            start_to=week_end,
        )

        now = self.clock()
        next_week = start_of_day(next_week_start(now))
        following_week = next_week + timedelta(days=7)
        cancel_after = start_of_day(utc_date(now) + timedelta(days=CANCEL_NOTICE_DAYS))
        types = VISIBLE_TYPES[student.lesson_preference]

        week = empty_week(week_start.date())
        for lesson in lessons:
            if lesson.type not in types or lesson.style not in student.preferred_styles:
                continue
            assigned = student.id in lesson.student_ids
            entry = LessonEntry(
                lesson=lesson,
                assignable=(
                    not assigned
                    and next_week <= lesson.start_time < following_week
                    and self._has_seat_for(lesson, student)
                ),
                cancelable=assigned and lesson.start_time > cancel_after,
            )
            week[day_of_week(utc_date(lesson.start_time)).index].lessons.append(entry)
        return week

    @staticmethod
    def _has_seat_for(lesson: Lesson, student: Student) -> bool:
        try:
            lesson.check_seat_for(student)
        except SchedulingError:
            return False
        return True
