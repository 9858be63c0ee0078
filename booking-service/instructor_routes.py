from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date

from dependencies import INSTRUCTOR, Services, get_current_user, get_services, require_role
from intervals import DayOfWeek
from schemas import (
    CreateInstructorRequest,
    InstructorListResponse,
    InstructorResponse,
    MessageResponse,
    TimeRangeItem,
    UpdateInstructorRequest,
    WeeklyAvailabilityItem,
)

router = APIRouter(prefix="/instructors", tags=["instructors"])

# 1. CREATE INSTRUCTOR
@router.post("", response_model=InstructorResponse, status_code=201)
async def add_instructor(
    data: CreateInstructorRequest,
    user: dict = Depends(require_role()),
    services: Services = Depends(get_services)
):
    instructor = await services.instructors.add_instructor(
        name=data.name,
        expertise=data.expertise,
        available_hours=[h.to_domain() for h in data.available_hours],
    )
    return InstructorResponse.of(instructor)

# 2. UPDATE INSTRUCTOR (working hours are replaced wholesale)
@router.put("/{instructor_id}", response_model=InstructorResponse)
async def update_instructor(
    instructor_id: str,
    data: UpdateInstructorRequest,
    user: dict = Depends(require_role(INSTRUCTOR)),
    services: Services = Depends(get_services)
):
    instructor = await services.instructors.update_instructor(
        instructor_id,
        name=data.name,
        expertise=data.expertise,
        available_hours=(
            [h.to_domain() for h in data.available_hours]
            if data.available_hours is not None else None
        ),
    )
    return InstructorResponse.of(instructor)

# 3. DELETE INSTRUCTOR
@router.delete("/{instructor_id}", response_model=MessageResponse)
async def remove_instructor(
    instructor_id: str,
    user: dict = Depends(require_role()),
    services: Services = Depends(get_services)
):
    await services.instructors.remove_instructor(instructor_id)
    return MessageResponse(message="Instructor removed")

# 4. LIST INSTRUCTORS
@router.get("", response_model=InstructorListResponse)
async def list_instructors(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    instructors, total = await services.instructors.list_instructors(page=page, limit=limit)
    return InstructorListResponse(
        instructors=[InstructorResponse.of(i) for i in instructors],
        total=total
    )

# 5. INSTRUCTORS WORKING AT A DAY/TIME
@router.get("/availability", response_model=List[InstructorResponse])
async def find_available_instructors(
    day: DayOfWeek,
    time: str = Query(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$"),
    styles: List[str] = Query(default=[]),
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    instructors = await services.instructors.find_available_instructors(day, time, styles)
    return [InstructorResponse.of(i) for i in instructors]

# 6. WEEKLY AVAILABILITY (future weeks only, pending requests count as busy)
@router.get("/weekly-availability", response_model=List[WeeklyAvailabilityItem])
async def weekly_availability(
    date: date,
    styles: List[str] = Query(...),
    instructor_ids: Optional[List[str]] = Query(default=None),
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    weeks = await services.availability.weekly_availability(date, styles, instructor_ids)
    return [WeeklyAvailabilityItem.of(w) for w in weeks]

# 7. GET INSTRUCTOR
@router.get("/{instructor_id}", response_model=InstructorResponse)
async def get_instructor(
    instructor_id: str,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return InstructorResponse.of(await services.instructors.get_instructor(instructor_id))

# 8. FREE HOURS ON ONE DATE (confirmed lessons only)
@router.get("/{instructor_id}/available-hours", response_model=List[TimeRangeItem])
async def available_hours(
    instructor_id: str,
    date: date,
    user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    slots = await services.availability.available_hours_for_instructor(instructor_id, date)
    return [TimeRangeItem.of(s) for s in slots]
