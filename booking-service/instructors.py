import logging
from typing import List, Optional, Sequence, Tuple

from availability import validate_and_sort_availability
from errors import ConflictError, NotFoundError
from intervals import DayOfWeek, WorkingInterval
from models import Instructor
from repository import Repository

logger = logging.getLogger(__name__)


class InstructorService:
    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    async def add_instructor(
        self,
        name: str,
        expertise: Sequence[str],
        available_hours: Sequence[WorkingInterval] = (),
    ) -> Instructor:
        hours = validate_and_sort_availability(available_hours)
        instructor = Instructor(
            name=await self.unique_name(name),
            expertise=list(expertise),
            available_hours=hours,
        )
        instructor = await self.repository.save_instructor(instructor)
        logger.info("Instructor %s added as %r", instructor.id, instructor.name)
        return instructor

    async def update_instructor(
        self,
        instructor_id: str,
        name: Optional[str] = None,
        expertise: Optional[Sequence[str]] = None,
        available_hours: Optional[Sequence[WorkingInterval]] = None,
    ) -> Instructor:
        instructor = await self.get_instructor(instructor_id)

        # working hours are replaced as a whole, never patched
        if available_hours is not None:
            instructor.available_hours = validate_and_sort_availability(available_hours)
        if expertise is not None:
            instructor.expertise = list(expertise)
        if name is not None and name != instructor.name:
            instructor.name = await self.unique_name(name)

        instructor = await self.repository.save_instructor(instructor)
        logger.info("Instructor %s updated", instructor_id)
        return instructor

    async def unique_name(self, base_name: str) -> str:
        name, count = base_name, 1
        while await self.repository.instructor_name_exists(name):
            name = f"{base_name}({count})"
            count += 1
        return name

    async def remove_instructor(self, instructor_id: str) -> None:
        await self.get_instructor(instructor_id)
        # lessons and requests reference the instructor, they are never orphaned
        if await self.repository.instructor_has_bookings(instructor_id):
            raise ConflictError(
                "Instructor has lessons or lesson requests and cannot be removed",
                details={"instructor_id": instructor_id},
            )
        if not await self.repository.delete_instructor(instructor_id):
            raise NotFoundError("Instructor not found", details={"instructor_id": instructor_id})
        logger.info("Instructor %s removed", instructor_id)

    async def get_instructor(self, instructor_id: str) -> Instructor:
        instructor = await self.repository.get_instructor(instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor not found", details={"instructor_id": instructor_id})
        return instructor

    async def list_instructors(self, page: int = 1, limit: int = 10) -> Tuple[List[Instructor], int]:
        return await self.repository.list_instructors(offset=(page - 1) * limit, limit=limit)

    async def working_days(self, instructor_id: str) -> List[DayOfWeek]:
        instructor = await self.get_instructor(instructor_id)
        return instructor.working_days()

    async def find_available_instructors(self, day: DayOfWeek, at: str, styles: Sequence[str]) -> List[Instructor]:
        """Instructors working on ``day`` at clock time ``at`` who teach every style."""
        instructors = await self.repository.find_instructors()
        return [
            i for i in instructors
            if all(style in i.expertise for style in styles)
            and any(h.day == day and h.start <= at <= h.end for h in i.available_hours)
        ]
