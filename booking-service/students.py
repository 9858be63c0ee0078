import logging
import re
from typing import List, Optional, Sequence, Tuple

from errors import ConflictError, NotFoundError
from models import PREFERENCE_PRIORITY, LessonPreference, LessonType, Student
from repository import Repository

logger = logging.getLogger(__name__)


class StudentService:
    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    async def add_student(
        self,
        first_name: str,
        last_name: str,
        preferred_styles: Sequence[str],
        lesson_preference: LessonPreference,
    ) -> Student:
        student = Student(
            first_name=first_name,
            last_name=await self.unique_last_name(first_name, last_name),
            preferred_styles=list(preferred_styles),
            lesson_preference=lesson_preference,
        )
        student = await self.repository.save_student(student)
        logger.info("Student %s added", student.id)
        return student

    async def unique_last_name(self, first_name: str, last_name: str) -> str:
        """``last_name`` or ``last_name(n)``, free for this first name."""
        pattern = re.compile(rf"^{re.escape(last_name)}(\s*\(\d+\))?$")
        taken = {
            s.last_name for s in await self.repository.find_students(first_name=first_name)
            if pattern.match(s.last_name)
        }
        candidate, counter = last_name, 1
        while candidate in taken:
            candidate = f"{last_name}({counter})"
            counter += 1
        return candidate

    async def update_student(
        self,
        student_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        preferred_styles: Optional[Sequence[str]] = None,
        lesson_preference: Optional[LessonPreference] = None,
    ) -> Student:
        student = await self.get_student(student_id)
        if first_name is not None:
            student.first_name = first_name
        if last_name is not None:
            student.last_name = last_name
        if preferred_styles is not None:
            student.preferred_styles = list(preferred_styles)
        if lesson_preference is not None:
            student.lesson_preference = lesson_preference
        return await self.repository.save_student(student)

    async def delete_student(self, student_id: str) -> None:
        if not await self.repository.delete_student(student_id):
            raise NotFoundError("Student not found", details={"student_id": student_id})
        logger.info("Student %s deleted", student_id)

    async def get_student(self, student_id: str) -> Student:
        student = await self.repository.get_student(student_id)
        if student is None:
            raise NotFoundError("Student not found", details={"student_id": student_id})
        return student

    async def list_students(
        self,
        page: int = 1,
        limit: int = 10,
        style: Optional[str] = None,
        preference: Optional[LessonPreference] = None,
    ) -> Tuple[List[Student], int]:
        return await self.repository.list_students(
            offset=(page - 1) * limit, limit=limit, style=style, preference=preference
        )

    async def find_matching_students(self, style: str, lesson_type: LessonType) -> List[Student]:
        priority = PREFERENCE_PRIORITY[lesson_type]
        students = await self.repository.find_students(style=style, preferences=priority)
        return sorted(students, key=lambda s: priority.index(s.lesson_preference))

    # ---------- LESSON ASSIGNMENT ----------
    async def assign_student_to_lesson(self, student_id: str, lesson_id: str) -> Student:
        lesson = await self.repository.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})
        student = await self.get_student(student_id)

        if student_id in lesson.student_ids:
            raise ConflictError(
                "Student is already assigned to this lesson",
                details={"lesson_id": lesson_id, "student_id": student_id},
            )
        lesson.check_seat_for(student)

        lesson.student_ids.append(student_id)
        await self.repository.save_lesson(lesson)
        logger.info("Student %s assigned to lesson %s", student_id, lesson_id)
        return student

    async def remove_student_from_lesson(self, student_id: str, lesson_id: str) -> Student:
        lesson = await self.repository.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})
        student = await self.get_student(student_id)

        if student_id not in lesson.student_ids:
            raise ConflictError(
                "Student is not assigned to this lesson",
                details={"lesson_id": lesson_id, "student_id": student_id},
            )

        lesson.student_ids = [sid for sid in lesson.student_ids if sid != student_id]
        await self.repository.save_lesson(lesson)
        logger.info("Student %s removed from lesson %s", student_id, lesson_id)
        return student
