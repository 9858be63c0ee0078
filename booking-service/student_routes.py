from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from dependencies import INSTRUCTOR, STUDENT, Services, get_current_user, get_services, require_role
from models import LessonPreference, LessonType
from schemas import (
    CreateStudentRequest,
    MessageResponse,
    StudentListResponse,
    StudentResponse,
    UpdateStudentRequest,
)

router = APIRouter(prefix="/students", tags=["students"])

# 1. CREATE STUDENT
@router.post("", response_model=StudentResponse, status_code=201)
async def add_student(
    data: CreateStudentRequest,
    user: dict = Depends(require_role()),
    services: Services = Depends(get_services)
):
    student = await services.students.add_student(
        first_name=data.first_name,
        last_name=data.last_name,
        preferred_styles=data.preferred_styles,
        lesson_preference=data.lesson_preference,
    )
    return StudentResponse.of(student)

# 2. UPDATE STUDENT
@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    data: UpdateStudentRequest,
    user: dict = Depends(require_role(STUDENT)),
    services: Services = Depends(get_services)
):
    student = await services.students.update_student(
        student_id,
        first_name=data.first_name,
        last_name=data.last_name,
        preferred_styles=data.preferred_styles,
        lesson_preference=data.lesson_preference,
    )
    return StudentResponse.of(student)

# 3. DELETE STUDENT
@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: str,
    user: dict = Depends(require_role()),
    services: Services = Depends(get_services)
):
    await services.students.delete_student(student_id)
    return MessageResponse(message="Student deleted")

# 4. LIST STUDENTS
@router.get("", response_model=StudentListResponse)
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    style: Optional[str] = None,
    lesson_preference: Optional[LessonPreference] = None,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    students, total = await services.students.list_students(
        page=page, limit=limit, style=style, preference=lesson_preference
    )
    return StudentListResponse(students=[StudentResponse.of(s) for s in students], total=total)

# 5. MATCHING STUDENTS (best preference match first)
@router.get("/match", response_model=List[StudentResponse])
async def find_matching_students(
    style: str,
    type: LessonType,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    students = await services.students.find_matching_students(style, type)
    return [StudentResponse.of(s) for s in students]

# 6. GET STUDENT
@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return StudentResponse.of(await services.students.get_student(student_id))

# 7. ASSIGN TO LESSON
@router.post("/{student_id}/lessons/{lesson_id}", response_model=StudentResponse)
async def assign_student_to_lesson(
    student_id: str,
    lesson_id: str,
    user: dict = Depends(require_role(INSTRUCTOR, STUDENT)),
    services: Services = Depends(get_services)
):
    return StudentResponse.of(await services.students.assign_student_to_lesson(student_id, lesson_id))

# 8. REMOVE FROM LESSON
@router.delete("/{student_id}/lessons/{lesson_id}", response_model=StudentResponse)
async def remove_student_from_lesson(
    student_id: str,
    lesson_id: str,
    user: dict = Depends(require_role(INSTRUCTOR, STUDENT)),
    services: Services = Depends(get_services)
):
    return StudentResponse.of(await services.students.remove_student_from_lesson(student_id, lesson_id))
