"""
Persistence boundary of the scheduling core.

The services only talk to the ``Repository`` protocol. ``SqlRepository``
implements it on async SQLAlchemy and opens a fresh session for every
call, so checks dispatched together with ``asyncio.gather`` never share
one ``AsyncSession``.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db import (
    InstructorRecord,
    LessonRecord,
    LessonRequestRecord,
    StudentRecord,
    lesson_students,
    new_id,
    request_students,
)
from intervals import DayOfWeek, WorkingInterval, ensure_utc
from models import (
    Instructor,
    Lesson,
    LessonPreference,
    LessonRequest,
    LessonType,
    RequestStatus,
    Student,
)


class Repository(Protocol):
    # ---------- instructors ----------
    async def get_instructor(self, instructor_id: str) -> Optional[Instructor]: ...
    async def find_instructors(self, ids: Optional[Sequence[str]] = None) -> List[Instructor]: ...
    async def list_instructors(self, offset: int, limit: int) -> Tuple[List[Instructor], int]: ...
    async def instructor_name_exists(self, name: str) -> bool: ...
    async def save_instructor(self, instructor: Instructor) -> Instructor: ...
    async def instructor_has_bookings(self, instructor_id: str) -> bool: ...
    async def delete_instructor(self, instructor_id: str) -> bool: ...

    # ---------- students ----------
    async def get_student(self, student_id: str) -> Optional[Student]: ...
    async def get_students(self, ids: Sequence[str]) -> List[Student]: ...
    async def find_students(
        self,
        first_name: Optional[str] = None,
        style: Optional[str] = None,
        preferences: Optional[Sequence[LessonPreference]] = None,
    ) -> List[Student]: ...
    async def list_students(
        self,
        offset: int,
        limit: int,
        style: Optional[str] = None,
        preference: Optional[LessonPreference] = None,
    ) -> Tuple[List[Student], int]: ...
    async def save_student(self, student: Student) -> Student: ...
    async def delete_student(self, student_id: str) -> bool: ...

    # ---------- lessons ----------
    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]: ...
    async def find_lessons(
        self,
        instructor_ids: Optional[Sequence[str]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[Lesson]: ...
    async def find_overlapping_lessons(
        self, instructor_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> List[Lesson]: ...
    async def list_lessons(
        self, offset: int, limit: int, instructor_id: Optional[str] = None, style: Optional[str] = None
    ) -> Tuple[List[Lesson], int]: ...
    async def save_lesson(self, lesson: Lesson) -> Lesson: ...
    async def delete_lesson(self, lesson_id: str) -> bool: ...

    # ---------- lesson requests ----------
    async def get_request(self, request_id: str) -> Optional[LessonRequest]: ...
    async def find_requests(
        self,
        instructor_ids: Optional[Sequence[str]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        status: Optional[RequestStatus] = None,
    ) -> List[LessonRequest]: ...
    async def find_overlapping_requests(
        self, instructor_id: str, start: datetime, end: datetime
    ) -> List[LessonRequest]: ...
    async def count_pending_requests(self, student_ids: Sequence[str]) -> Dict[str, int]: ...
    async def list_requests(
        self,
        offset: int,
        limit: int,
        statuses: Optional[Sequence[RequestStatus]] = None,
        instructor_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Tuple[List[LessonRequest], int]: ...
    async def save_request(self, request: LessonRequest) -> LessonRequest: ...
    async def delete_request(self, request_id: str) -> bool: ...


# ---------- ROW MAPPING ----------
def to_instructor(row: InstructorRecord) -> Instructor:
    return Instructor(
        id=row.id,
        name=row.name,
        expertise=list(row.expertise or []),
        available_hours=[
            WorkingInterval(day=DayOfWeek(h["day"]), start=h["start"], end=h["end"])
            for h in (row.available_hours or [])
        ],
    )


def to_student(row: StudentRecord) -> Student:
    return Student(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        preferred_styles=list(row.preferred_styles or []),
        lesson_preference=LessonPreference(row.lesson_preference),
    )


def to_lesson(row: LessonRecord, student_ids: List[str]) -> Lesson:
    return Lesson(
        id=row.id,
        instructor_id=row.instructor_id,
        student_ids=student_ids,
        style=row.style,
        type=LessonType(row.type),
        start_time=ensure_utc(row.start_time),
        end_time=ensure_utc(row.end_time),
    )


def to_request(row: LessonRequestRecord, student_ids: List[str]) -> LessonRequest:
    return LessonRequest(
        id=row.id,
        instructor_id=row.instructor_id,
        student_ids=student_ids,
        style=row.style,
        type=LessonType(row.type),
        start_time=ensure_utc(row.start_time),
        end_time=ensure_utc(row.end_time),
        status=RequestStatus(row.status),
        created_at=ensure_utc(row.created_at) if row.created_at else None,
    )


class SqlRepository:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self.session_factory = session_factory

    # ---------- helpers ----------
    async def _links(self, session: AsyncSession, table, owner_column: str, owner_ids: Iterable[str]) -> Dict[str, List[str]]:
        owner_ids = list(owner_ids)
        links: Dict[str, List[str]] = {owner_id: [] for owner_id in owner_ids}
        if not owner_ids:
            return links
        owner = table.c[owner_column]
        result = await session.execute(select(owner, table.c.student_id).where(owner.in_(owner_ids)))
        for owner_id, student_id in result.all():
            links[owner_id].append(student_id)
        return links

    async def _replace_links(self, session: AsyncSession, table, owner_column: str, owner_id: str, student_ids: Sequence[str]) -> None:
        await session.execute(delete(table).where(table.c[owner_column] == owner_id))
        if student_ids:
            await session.execute(
                insert(table),
                [{owner_column: owner_id, "student_id": sid} for sid in student_ids],
            )

    async def _lessons(self, session: AsyncSession, stmt) -> List[Lesson]:
        rows = (await session.execute(stmt)).scalars().all()
        links = await self._links(session, lesson_students, "lesson_id", [r.id for r in rows])
        return [to_lesson(r, links[r.id]) for r in rows]

    async def _requests(self, session: AsyncSession, stmt) -> List[LessonRequest]:
        rows = (await session.execute(stmt)).scalars().all()
        links = await self._links(session, request_students, "request_id", [r.id for r in rows])
        return [to_request(r, links[r.id]) for r in rows]

    @staticmethod
    async def _count(session: AsyncSession, stmt) -> int:
        count_stmt = select(func.count()).select_from(stmt.subquery())
        return int((await session.scalar(count_stmt)) or 0)

    # ---------- instructors ----------
    async def get_instructor(self, instructor_id: str) -> Optional[Instructor]:
        async with self.session_factory() as session:
            row = await session.get(InstructorRecord, instructor_id)
            return to_instructor(row) if row else None

    async def find_instructors(self, ids: Optional[Sequence[str]] = None) -> List[Instructor]:
        stmt = select(InstructorRecord).order_by(InstructorRecord.name)
        if ids:
            stmt = stmt.where(InstructorRecord.id.in_(list(ids)))
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [to_instructor(r) for r in rows]

    async def list_instructors(self, offset: int, limit: int) -> Tuple[List[Instructor], int]:
        stmt = select(InstructorRecord)
        async with self.session_factory() as session:
            total = await self._count(session, stmt)
            rows = (await session.execute(
                stmt.order_by(InstructorRecord.name).offset(offset).limit(limit)
            )).scalars().all()
            return [to_instructor(r) for r in rows], total

    async def instructor_name_exists(self, name: str) -> bool:
        async with self.session_factory() as session:
            found = await session.scalar(select(InstructorRecord.id).where(InstructorRecord.name == name))
            return found is not None

    async def save_instructor(self, instructor: Instructor) -> Instructor:
        hours = [h.to_dict() for h in instructor.available_hours]
        async with self.session_factory() as session:
            row = await session.get(InstructorRecord, instructor.id) if instructor.id else None
            if row is None:
                row = InstructorRecord(id=instructor.id or new_id())
                session.add(row)
            row.name = instructor.name
            row.expertise = list(instructor.expertise)
            row.available_hours = hours
            await session.commit()
            return to_instructor(row)

    async def instructor_has_bookings(self, instructor_id: str) -> bool:
        async with self.session_factory() as session:
            lesson = await session.scalar(
                select(LessonRecord.id).where(LessonRecord.instructor_id == instructor_id).limit(1)
            )
            if lesson is not None:
                return True
            request = await session.scalar(
                select(LessonRequestRecord.id).where(LessonRequestRecord.instructor_id == instructor_id).limit(1)
            )
            return request is not None

    async def delete_instructor(self, instructor_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(InstructorRecord).where(InstructorRecord.id == instructor_id))
            await session.commit()
            return result.rowcount > 0

    # ---------- students ----------
    async def get_student(self, student_id: str) -> Optional[Student]:
        async with self.session_factory() as session:
            row = await session.get(StudentRecord, student_id)
            return to_student(row) if row else None

    async def get_students(self, ids: Sequence[str]) -> List[Student]:
        if not ids:
            return []
        async with self.session_factory() as session:
            rows = (await session.execute(
                select(StudentRecord).where(StudentRecord.id.in_(list(ids)))
            )).scalars().all()
            return [to_student(r) for r in rows]

    async def find_students(
        self,
        first_name: Optional[str] = None,
        style: Optional[str] = None,
        preferences: Optional[Sequence[LessonPreference]] = None,
    ) -> List[Student]:
        stmt = select(StudentRecord)
        if first_name is not None:
            stmt = stmt.where(StudentRecord.first_name == first_name)
        if preferences:
            stmt = stmt.where(StudentRecord.lesson_preference.in_([p.value for p in preferences]))
        async with self.session_factory() as session:
            students = [to_student(r) for r in (await session.execute(stmt)).scalars().all()]
        # JSON containment differs per backend, filter styles here
        if style is not None:
            students = [s for s in students if style in s.preferred_styles]
        return students

    async def list_students(
        self,
        offset: int,
        limit: int,
        style: Optional[str] = None,
        preference: Optional[LessonPreference] = None,
    ) -> Tuple[List[Student], int]:
        if style is not None:
            students = await self.find_students(style=style, preferences=[preference] if preference else None)
            students.sort(key=lambda s: (s.last_name, s.first_name))
            return students[offset:offset + limit], len(students)

        stmt = select(StudentRecord)
        if preference is not None:
            stmt = stmt.where(StudentRecord.lesson_preference == preference.value)
        async with self.session_factory() as session:
            total = await self._count(session, stmt)
            rows = (await session.execute(
                stmt.order_by(StudentRecord.last_name, StudentRecord.first_name).offset(offset).limit(limit)
            )).scalars().all()
            return [to_student(r) for r in rows], total

    async def save_student(self, student: Student) -> Student:
        async with self.session_factory() as session:
            row = await session.get(StudentRecord, student.id) if student.id else None
            if row is None:
                row = StudentRecord(id=student.id or new_id())
                session.add(row)
            row.first_name = student.first_name
            row.last_name = student.last_name
            row.preferred_styles = list(student.preferred_styles)
            row.lesson_preference = student.lesson_preference.value
            await session.commit()
            return to_student(row)

    async def delete_student(self, student_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(StudentRecord).where(StudentRecord.id == student_id))
            await session.commit()
            return result.rowcount > 0

    # ---------- lessons ----------
    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        async with self.session_factory() as session:
            lessons = await self._lessons(session, select(LessonRecord).where(LessonRecord.id == lesson_id))
            return lessons[0] if lessons else None

    async def find_lessons(
        self,
        instructor_ids: Optional[Sequence[str]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[Lesson]:
        stmt = select(LessonRecord).order_by(LessonRecord.start_time)
        if instructor_ids is not None:
            stmt = stmt.where(LessonRecord.instructor_id.in_(list(instructor_ids)))
        if start_from is not None:
            stmt = stmt.where(LessonRecord.start_time >= start_from)
        if start_to is not None:
            stmt = stmt.where(LessonRecord.start_time <= start_to)
        async with self.session_factory() as session:
            return await self._lessons(session, stmt)

    async def find_overlapping_lessons(
        self, instructor_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> List[Lesson]:
        # Overlap Logic: (StartA < EndB) and (StartB < EndA)
        stmt = select(LessonRecord).where(
            LessonRecord.instructor_id == instructor_id,
            LessonRecord.start_time < end,
            LessonRecord.end_time > start,
        )
        if exclude_id is not None:
            stmt = stmt.where(LessonRecord.id != exclude_id)
        async with self.session_factory() as session:
            return await self._lessons(session, stmt)

    async def list_lessons(
        self, offset: int, limit: int, instructor_id: Optional[str] = None, style: Optional[str] = None
    ) -> Tuple[List[Lesson], int]:
        stmt = select(LessonRecord)
        if instructor_id is not None:
            stmt = stmt.where(LessonRecord.instructor_id == instructor_id)
        if style is not None:
            stmt = stmt.where(LessonRecord.style == style)
        async with self.session_factory() as session:
            total = await self._count(session, stmt)
            lessons = await self._lessons(
                session, stmt.order_by(LessonRecord.start_time).offset(offset).limit(limit)
            )
            return lessons, total

    async def save_lesson(self, lesson: Lesson) -> Lesson:
        async with self.session_factory() as session:
            row = await session.get(LessonRecord, lesson.id) if lesson.id else None
            if row is None:
                row = LessonRecord(id=lesson.id or new_id())
                session.add(row)
            row.instructor_id = lesson.instructor_id
            row.style = lesson.style
            row.type = lesson.type.value
            row.start_time = lesson.start_time
            row.end_time = lesson.end_time
            await session.flush()
            await self._replace_links(session, lesson_students, "lesson_id", row.id, lesson.student_ids)
            await session.commit()
            return to_lesson(row, list(lesson.student_ids))

    async def delete_lesson(self, lesson_id: str) -> bool:
        async with self.session_factory() as session:
            await session.execute(delete(lesson_students).where(lesson_students.c.lesson_id == lesson_id))
            result = await session.execute(delete(LessonRecord).where(LessonRecord.id == lesson_id))
            await session.commit()
            return result.rowcount > 0

    # ---------- lesson requests ----------
    async def get_request(self, request_id: str) -> Optional[LessonRequest]:
        async with self.session_factory() as session:
            requests = await self._requests(
                session, select(LessonRequestRecord).where(LessonRequestRecord.id == request_id)
            )
            return requests[0] if requests else None

    async def find_requests(
        self,
        instructor_ids: Optional[Sequence[str]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        status: Optional[RequestStatus] = None,
    ) -> List[LessonRequest]:
        stmt = select(LessonRequestRecord).order_by(LessonRequestRecord.start_time)
        if instructor_ids is not None:
            stmt = stmt.where(LessonRequestRecord.instructor_id.in_(list(instructor_ids)))
        if start_from is not None:
            stmt = stmt.where(LessonRequestRecord.start_time >= start_from)
        if start_to is not None:
            stmt = stmt.where(LessonRequestRecord.start_time <= start_to)
        if status is not None:
            stmt = stmt.where(LessonRequestRecord.status == status.value)
        async with self.session_factory() as session:
            return await self._requests(session, stmt)

    async def find_overlapping_requests(
        self, instructor_id: str, start: datetime, end: datetime
    ) -> List[LessonRequest]:
        stmt = select(LessonRequestRecord).where(
            LessonRequestRecord.instructor_id == instructor_id,
            LessonRequestRecord.start_time < end,
            LessonRequestRecord.end_time > start,
        )
        async with self.session_factory() as session:
            return await self._requests(session, stmt)

    async def count_pending_requests(self, student_ids: Sequence[str]) -> Dict[str, int]:
        if not student_ids:
            return {}
        stmt = (
            select(request_students.c.student_id, func.count())
            .join(LessonRequestRecord, LessonRequestRecord.id == request_students.c.request_id)
            .where(
                LessonRequestRecord.status == RequestStatus.PENDING.value,
                request_students.c.student_id.in_(list(student_ids)),
            )
            .group_by(request_students.c.student_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return {student_id: count for student_id, count in result.all()}

    async def list_requests(
        self,
        offset: int,
        limit: int,
        statuses: Optional[Sequence[RequestStatus]] = None,
        instructor_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Tuple[List[LessonRequest], int]:
        stmt = select(LessonRequestRecord)
        if statuses:
            stmt = stmt.where(LessonRequestRecord.status.in_([s.value for s in statuses]))
        if instructor_id is not None:
            stmt = stmt.where(LessonRequestRecord.instructor_id == instructor_id)
        if student_id is not None:
            stmt = stmt.where(
                LessonRequestRecord.id.in_(
                    select(request_students.c.request_id).where(request_students.c.student_id == student_id)
                )
            )
        async with self.session_factory() as session:
            total = await self._count(session, stmt)
            requests = await self._requests(
                session,
                stmt.order_by(LessonRequestRecord.created_at.desc()).offset(offset).limit(limit),
            )
            return requests, total

    async def save_request(self, request: LessonRequest) -> LessonRequest:
        async with self.session_factory() as session:
            row = await session.get(LessonRequestRecord, request.id) if request.id else None
            if row is None:
                row = LessonRequestRecord(id=request.id or new_id())
                if request.created_at is not None:
                    row.created_at = request.created_at
                session.add(row)
            row.instructor_id = request.instructor_id
            row.style = request.style
            row.type = request.type.value
            row.status = request.status.value
            row.start_time = request.start_time
            row.end_time = request.end_time
            await session.flush()
            await self._replace_links(session, request_students, "request_id", row.id, request.student_ids)
            await session.commit()
            return to_request(row, list(request.student_ids))

    async def delete_request(self, request_id: str) -> bool:
        async with self.session_factory() as session:
            await session.execute(delete(request_students).where(request_students.c.request_id == request_id))
            result = await session.execute(delete(LessonRequestRecord).where(LessonRequestRecord.id == request_id))
            await session.commit()
            return result.rowcount > 0
