from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import asyncio

from dependencies import INSTRUCTOR, STUDENT, Services, get_current_user, get_services, require_role
from models import LessonProposal, RequestStatus
from schemas import (
    ApproveRequest,
    LessonRequestListResponse,
    LessonRequestResponse,
    MessageResponse,
    SubmitLessonRequest,
)

router = APIRouter(prefix="/lesson-requests", tags=["lesson-requests"])

# 1. SUBMIT REQUEST
@router.post("", response_model=LessonRequestResponse, status_code=201)
async def add_lesson_request(
    data: SubmitLessonRequest,
    user: dict = Depends(require_role(STUDENT)),
    services: Services = Depends(get_services)
):
    request = await services.requests.admit_request(LessonProposal.of(data))
    return LessonRequestResponse.of(request)

# 2. APPROVE / REJECT
@router.post("/{request_id}/approve", response_model=MessageResponse)
async def approve_lesson_request(
    request_id: str,
    data: ApproveRequest,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    await services.requests.decide_request(request_id, data.approve)
    return MessageResponse(
        message="Lesson request approved and lesson created" if data.approve else "Lesson request rejected"
    )

# 3. DELETE REQUEST
@router.delete("/{request_id}", response_model=MessageResponse)
async def remove_lesson_request(
    request_id: str,
    user: dict = Depends(require_role(INSTRUCTOR, STUDENT)),
    services: Services = Depends(get_services)
):
    await services.requests.remove_request(request_id)
    return MessageResponse(message="Lesson request removed")

# 4. LIST REQUESTS (newest first, with the can_approve display flag)
@router.get("", response_model=LessonRequestListResponse)
async def list_lesson_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[List[RequestStatus]] = Query(default=None),
    instructor_id: Optional[str] = None,
    student_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    requests, total = await services.requests.list_requests(
        page=page, limit=limit, statuses=status, instructor_id=instructor_id, student_id=student_id
    )
    errors = await asyncio.gather(*(services.requests.check_approval(r) for r in requests))
    return LessonRequestListResponse(
        lesson_requests=[
            # display only: the reason a request cannot be approved is dropped here
            LessonRequestResponse.of(r, can_approve=error is None)
            for r, error in zip(requests, errors)
        ],
        total=total
    )

# 5. UNASSIGN STUDENT FROM REQUEST
@router.delete("/{request_id}/students/{student_id}", response_model=LessonRequestResponse)
async def unassign_student(
    request_id: str,
    student_id: str,
    user: dict = Depends(require_role(INSTRUCTOR, STUDENT)),
    services: Services = Depends(get_services)
):
    return LessonRequestResponse.of(await services.requests.unassign_student(request_id, student_id))
