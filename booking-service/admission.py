import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from errors import ConflictError, NotFoundError, ValidationError
from intervals import TimeRange, clock_time, ensure_utc, utc_date, utc_now
from models import (
    MAX_PENDING_REQUESTS,
    Instructor,
    Lesson,
    LessonProposal,
    LessonRequest,
    LessonType,
    Participant,
)
from repository import Repository
from scheduling import AvailabilityService
from slots import fits_in_slots

logger = logging.getLogger(__name__)


class AdmissionControl:
    def __init__(
        self,
        repository: Repository,
        availability: AvailabilityService,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.availability = availability
        self.clock = clock

    # ---------- DATES ----------
    def validate_dates(self, start_time: datetime, end_time: datetime) -> None:
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)
        if start_time <= self.clock():
            raise ValidationError(
                "Start time must be in the future",
                details={"start_time": start_time.isoformat()},
            )
        if end_time <= start_time:
            raise ValidationError(
                "End time must be after the start time",
                details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
            )

    # ---------- PARTICIPANTS ----------
    async def validate_instructor(self, instructor_id: str, style: str, lesson_type: LessonType) -> Instructor:
        instructor = await self.repository.get_instructor(instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor does not exist", details={"instructor_id": instructor_id})
        instructor.check_eligibility(style, lesson_type)
        return instructor

    async def validate_students(self, student_ids: Sequence[str], style: str, lesson_type: LessonType) -> None:
        if not student_ids:
            return
        if len(set(student_ids)) != len(student_ids):
            duplicates = sorted({sid for sid in student_ids if list(student_ids).count(sid) > 1})
            raise ValidationError(
                "A student may only be listed once per lesson",
                details={"student_ids": duplicates},
            )

        students = await self.repository.get_students(student_ids)
        found = {s.id for s in students}
        missing = [sid for sid in student_ids if sid not in found]
        if missing:
            raise NotFoundError(
                f"Students not found: {', '.join(missing)}",
                details={"student_ids": missing},
            )

        participants: List[Participant] = sorted(students, key=lambda s: list(student_ids).index(s.id))
        for participant in participants:
            participant.check_eligibility(style, lesson_type)

    async def validate_participants(
        self, instructor_id: str, student_ids: Sequence[str], style: str, lesson_type: LessonType
    ) -> None:
        await self.validate_instructor(instructor_id, style, lesson_type)
        await self.validate_students(student_ids, style, lesson_type)

    # ---------- CAPACITY ----------
    @staticmethod
    def validate_capacity(lesson_type: LessonType, student_count: int) -> None:
        if student_count > lesson_type.capacity:
            if lesson_type is LessonType.PRIVATE:
                message = "A private lesson can have at most one student."
            else:
                message = f"A group lesson can have at most {lesson_type.capacity} students."
            raise ValidationError(
                message,
                details={"type": lesson_type.value, "capacity": lesson_type.capacity, "students": student_count},
            )

    # ---------- AVAILABILITY ----------
    async def validate_instructor_availability(
        self,
        instructor_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> None:
        on = utc_date(start_time)
        slots = await self.availability.available_hours_for_instructor(
            instructor_id, on, exclude_lesson_id=exclude_lesson_id
        )
        if not slots:
            raise ValidationError(
                "Instructor is not available on the selected date",
                details={"instructor_id": instructor_id, "date": on.isoformat()},
            )

        window = TimeRange(clock_time(start_time), clock_time(end_time))
        # a window running past midnight never fits a single day's slots
        if utc_date(end_time) != on or not fits_in_slots(window, slots):
            raise ValidationError(
                "Lesson timing does not fit within the instructor's available hours",
                details={
                    "instructor_id": instructor_id,
                    "date": on.isoformat(),
                    "requested": str(window),
                    "available_hours": [str(s) for s in slots],
                },
            )

    # ---------- OVERLAP ----------
    async def validate_lesson_overlap(
        self,
        instructor_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> None:
        clashes = await self.repository.find_overlapping_lessons(
            instructor_id, ensure_utc(start_time), ensure_utc(end_time), exclude_id=exclude_lesson_id
        )
        if clashes:
            raise ConflictError(
                "Lesson times overlap with another lesson.",
                details={"instructor_id": instructor_id, "lesson_ids": [l.id for l in clashes]},
            )

    async def validate_request_overlap(self, instructor_id: str, start_time: datetime, end_time: datetime):
        clashes = await self.repository.find_overlapping_requests(
            instructor_id, ensure_utc(start_time), ensure_utc(end_time)
        )
        if clashes:
            raise ConflictError(
                "The instructor already has a lesson request during the specified time range.",
                details={"instructor_id": instructor_id, "request_ids": [r.id for r in clashes]},
            )

    # ---------- QUOTA ----------
    async def validate_pending_quota(self, student_ids: Sequence[str]):
        counts = await self.repository.count_pending_requests(student_ids)
        over = [sid for sid in student_ids if counts.get(sid, 0) >= MAX_PENDING_REQUESTS]
        if over:
            raise ValidationError(
                f"Students with IDs {', '.join(over)} already have "
                f"{MAX_PENDING_REQUESTS} or more pending lesson requests.",
                details={"student_ids": over, "limit": MAX_PENDING_REQUESTS},
            )

    # ---------- GATES ----------
    # Direct creation runs every check in order, the first failure wins.
    # Requests and updates run the input checks first, then the rest together.
    async def admit_lesson(self, proposal: LessonProposal):
        self.validate_dates(proposal.start_time, proposal.end_time)
        self.validate_capacity(proposal.type, len(proposal.student_ids))
        await self.validate_instructor(proposal.instructor_id, proposal.style, proposal.type)
        await self.validate_students(proposal.student_ids, proposal.style, proposal.type)
        await self.validate_instructor_availability(proposal.instructor_id, proposal.start_time, proposal.end_time)
        await self.validate_lesson_overlap(proposal.instructor_id, proposal.start_time, proposal.end_time)

    async def admit_request(self, proposal: LessonProposal):
        self.validate_dates(proposal.start_time, proposal.end_time)
        self.validate_capacity(proposal.type, len(proposal.student_ids))

        # unfinished checks keep running, only the first error is surfaced
        await asyncio.gather(
            self.validate_participants(
                proposal.instructor_id, proposal.student_ids, proposal.style, proposal.type
            ),
            self.validate_instructor_availability(
                proposal.instructor_id, proposal.start_time, proposal.end_time
            ),
            self.validate_request_overlap(proposal.instructor_id, proposal.start_time, proposal.end_time),
            self.validate_pending_quota(proposal.student_ids),
        )

    async def admit_update(self, existing: Lesson, merged: Lesson, changed: Sequence[str]):
        changed = set(changed)
        self.validate_dates(merged.start_time, merged.end_time)
        self.validate_capacity(merged.type, len(merged.student_ids))

        checks = []
        if changed & {"instructor_id", "student_ids", "style", "type"}:
            checks.append(
                self.validate_participants(merged.instructor_id, merged.student_ids, merged.style, merged.type)
            )
        if changed & {"instructor_id", "start_time", "end_time"}:
            checks.append(
                self.validate_instructor_availability(
                    merged.instructor_id, merged.start_time, merged.end_time, exclude_lesson_id=existing.id
                )
            )
        checks.append(
            self.validate_lesson_overlap(
                merged.instructor_id, merged.start_time, merged.end_time, exclude_lesson_id=existing.id
            )
        )
        await asyncio.gather(*checks)

    async def admit_approval(self, request: LessonRequest):
        """Re-validate a stored request: participants, then availability."""
        await self.validate_participants(request.instructor_id, request.student_ids, request.style, request.type)
        await self.validate_instructor_availability(request.instructor_id, request.start_time, request.end_time)
