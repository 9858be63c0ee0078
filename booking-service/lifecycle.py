# pending -> approved | rejected; both end states are terminal.
# The status write and the lesson write are separate commits.

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from admission import AdmissionControl
from errors import ConflictError, NotFoundError, SchedulingError, ValidationError
from intervals import ensure_utc, utc_now
from models import Lesson, LessonProposal, LessonRequest, RequestStatus
from repository import Repository

logger = logging.getLogger(__name__)


class RequestService:
    def __init__(
        self,
        repository: Repository,
        admission: AdmissionControl,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.admission = admission
        self.clock = clock

    async def admit_request(self, proposal: LessonProposal) -> LessonRequest:
        try:
            await self.admission.admit_request(proposal)
        except SchedulingError as exc:
            logger.info("Lesson request rejected for instructor %s: %s", proposal.instructor_id, exc.message)
            raise

        request = await self.repository.save_request(
            LessonRequest(
                instructor_id=proposal.instructor_id,
                student_ids=list(proposal.student_ids),
                style=proposal.style,
                type=proposal.type,
                start_time=ensure_utc(proposal.start_time),
                end_time=ensure_utc(proposal.end_time),
                status=RequestStatus.PENDING,
                created_at=self.clock(),
            )
        )
        logger.info("Lesson request %s submitted for instructor %s", request.id, request.instructor_id)
        return request

    async def decide_request(self, request_id: str, approve: bool) -> Optional[Lesson]:
        """Approve or reject a pending request.

        Returns the lesson created on approval, ``None`` on rejection.
        """
        request = await self.repository.get_request(request_id)
        if request is None:
            raise NotFoundError("Lesson request not found", details={"request_id": request_id})

        if request.status is not RequestStatus.PENDING:
            raise ConflictError(
                "Only pending requests can be transitioned",
                details={"request_id": request_id, "status": request.status.value},
            )

        if not approve:
            request.status = RequestStatus.REJECTED
            await self.repository.save_request(request)
            logger.info("Lesson request %s rejected", request_id)
            return None

        await self.admission.admit_approval(request)

        request.status = RequestStatus.APPROVED
        await self.repository.save_request(request)
        lesson = await self.repository.save_lesson(request.to_lesson())
        logger.info("Lesson request %s approved as lesson %s", request_id, lesson.id)
        return lesson

    async def check_approval(self, request: LessonRequest) -> Optional[SchedulingError]:
        """The error approving ``request`` would raise right now, if any."""
        try:
            await self.admission.admit_approval(request)
        except SchedulingError as exc:
            return exc
        return None

    async def remove_request(self, request_id: str) -> None:
        if not await self.repository.delete_request(request_id):
            raise NotFoundError("Lesson request not found", details={"request_id": request_id})
        logger.info("Lesson request %s removed", request_id)

    async def unassign_student(self, request_id: str, student_id: str) -> LessonRequest:
        request = await self.repository.get_request(request_id)
        if request is None:
            raise NotFoundError("Lesson request not found", details={"request_id": request_id})
        if student_id not in request.student_ids:
            raise ValidationError(
                "Student not assigned to this lesson request",
                details={"request_id": request_id, "student_id": student_id},
            )

        request.student_ids = [sid for sid in request.student_ids if sid != student_id]
        return await self.repository.save_request(request)

    async def list_requests(
        self,
        page: int = 1,
        limit: int = 10,
        statuses: Optional[Sequence[RequestStatus]] = None,
        instructor_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Tuple[List[LessonRequest], int]:
        return await self.repository.list_requests(
            offset=(page - 1) * limit,
            limit=limit,
            statuses=statuses,
            instructor_id=instructor_id,
            student_id=student_id,
        )
