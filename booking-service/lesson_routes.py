from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date

from dependencies import INSTRUCTOR, Services, get_current_user, get_services, require_role
from models import LessonProposal
from schemas import (
    CreateLessonRequest,
    LessonListResponse,
    LessonResponse,
    MessageResponse,
    StudentWeeklyLessonDayItem,
    UpdateLessonRequest,
    WeeklyLessonDayItem,
)

router = APIRouter(prefix="/lessons", tags=["lessons"])

# 1. CREATE LESSON
@router.post("", response_model=LessonResponse, status_code=201)
async def add_lesson(
    data: CreateLessonRequest,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    lesson = await services.lessons.admit_lesson(LessonProposal.of(data))
    return LessonResponse.of(lesson)

# 2. UPDATE LESSON (merged with the stored lesson and re-validated)
@router.put("/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: str,
    data: UpdateLessonRequest,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    lesson = await services.lessons.update_lesson(lesson_id, data.model_dump(exclude_unset=True))
    return LessonResponse.of(lesson)

# 3. DELETE LESSON
@router.delete("/{lesson_id}", response_model=MessageResponse)
async def remove_lesson(
    lesson_id: str,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    await services.lessons.remove_lesson(lesson_id)
    return MessageResponse(message="Lesson removed")

# 4. LIST LESSONS
@router.get("", response_model=LessonListResponse)
async def list_lessons(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    instructor_id: Optional[str] = None,
    style: Optional[str] = None,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    lessons, total = await services.lessons.list_lessons(
        page=page, limit=limit, instructor_id=instructor_id, style=style
    )
    return LessonListResponse(lessons=[LessonResponse.of(l) for l in lessons], total=total)

# 5. WEEKLY LESSONS (instructor view, grouped by day)
@router.get("/weekly", response_model=List[WeeklyLessonDayItem])
async def weekly_lessons(
    date: date,
    instructor_id: Optional[str] = None,
    own_only: bool = False,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    week = await services.lessons.weekly_lessons(date, instructor_id=instructor_id, own_only=own_only)
    return [WeeklyLessonDayItem.of(day) for day in week]

# 6. WEEKLY LESSONS (student view, with assignable/cancelable flags)
@router.get("/student-weekly", response_model=List[StudentWeeklyLessonDayItem])
async def student_weekly_lessons(
    date: date,
    student_id: str,
    instructor_ids: Optional[List[str]] = Query(default=None),
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    week = await services.lessons.student_weekly_lessons(date, student_id, instructor_ids)
    return [StudentWeeklyLessonDayItem.of(day) for day in week]
