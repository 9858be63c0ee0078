from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime

from intervals import DayOfWeek, TimeRange, WorkingInterval
from models import (
    Instructor,
    Lesson,
    LessonPreference,
    LessonRequest,
    LessonType,
    RequestStatus,
    Student,
)
from lessons import DayLessons, LessonEntry
from scheduling import InstructorWeek

CLOCK = r"^([01]\d|2[0-3]):[0-5]\d$"

def _unique(values: List[str]) -> List[str]:
    if len(set(values)) != len(values):
        raise ValueError("values must be unique")
    return values

# ---------- SHARED ----------
class WorkingIntervalItem(BaseModel):
    day: DayOfWeek
    start: str = Field(pattern=CLOCK)
    end: str = Field(pattern=CLOCK)

    def to_domain(self) -> WorkingInterval:
        return WorkingInterval(day=self.day, start=self.start, end=self.end)

class TimeRangeItem(BaseModel):
    start: str
    end: str

    @classmethod
    def of(cls, value: TimeRange) -> "TimeRangeItem":
        return cls(start=value.start, end=value.end)

class MessageResponse(BaseModel):
    message: str

# ---------- INSTRUCTORS ----------
class CreateInstructorRequest(BaseModel):
    name: str
    expertise: List[str]
    available_hours: List[WorkingIntervalItem] = []

    @field_validator("expertise")
    @classmethod
    def unique_expertise(cls, value: List[str]) -> List[str]:
        return _unique(value)

class UpdateInstructorRequest(BaseModel):
    name: Optional[str] = None
    expertise: Optional[List[str]] = None
    available_hours: Optional[List[WorkingIntervalItem]] = None

class InstructorResponse(BaseModel):
    id: str
    name: str
    expertise: List[str]
    available_hours: List[WorkingIntervalItem]

    @classmethod
    def of(cls, instructor: Instructor) -> "InstructorResponse":
        return cls(
            id=instructor.id,
            name=instructor.name,
            expertise=instructor.expertise,
            available_hours=[
                WorkingIntervalItem(day=h.day, start=h.start, end=h.end)
                for h in instructor.available_hours
            ],
        )

class InstructorListResponse(BaseModel):
    instructors: List[InstructorResponse]
    total: int

class DayAvailabilityItem(BaseModel):
    day: DayOfWeek
    date: date
    available_hours: List[TimeRangeItem]

class WeeklyAvailabilityItem(BaseModel):
    instructor_id: str
    instructor_name: str
    weekly_hours: List[DayAvailabilityItem]

    @classmethod
    def of(cls, week: InstructorWeek) -> "WeeklyAvailabilityItem":
        return cls(
            instructor_id=week.instructor_id,
            instructor_name=week.instructor_name,
            weekly_hours=[
                DayAvailabilityItem(
                    day=d.day,
                    date=d.date,
                    available_hours=[TimeRangeItem.of(s) for s in d.available_hours],
                )
                for d in week.weekly_hours
            ],
        )

# ---------- STUDENTS ----------
class CreateStudentRequest(BaseModel):
    first_name: str
    last_name: str
    preferred_styles: List[str]
    lesson_preference: LessonPreference

    @field_validator("preferred_styles")
    @classmethod
    def unique_styles(cls, value: List[str]) -> List[str]:
        return _unique(value)

class UpdateStudentRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    preferred_styles: Optional[List[str]] = None
    lesson_preference: Optional[LessonPreference] = None

class StudentResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    preferred_styles: List[str]
    lesson_preference: LessonPreference

    @classmethod
    def of(cls, student: Student) -> "StudentResponse":
        return cls(
            id=student.id,
            first_name=student.first_name,
            last_name=student.last_name,
            preferred_styles=student.preferred_styles,
            lesson_preference=student.lesson_preference,
        )

class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total: int

# ---------- LESSONS ----------
class CreateLessonRequest(BaseModel):
    instructor_id: str
    student_ids: List[str] = []
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime

class UpdateLessonRequest(BaseModel):
    instructor_id: Optional[str] = None
    student_ids: Optional[List[str]] = None
    style: Optional[str] = None
    type: Optional[LessonType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

class LessonResponse(BaseModel):
    id: str
    instructor_id: str
    student_ids: List[str]
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime

    @classmethod
    def of(cls, lesson: Lesson) -> "LessonResponse":
        return cls(
            id=lesson.id,
            instructor_id=lesson.instructor_id,
            student_ids=lesson.student_ids,
            style=lesson.style,
            type=lesson.type,
            start_time=lesson.start_time,
            end_time=lesson.end_time,
        )

class LessonListResponse(BaseModel):
    lessons: List[LessonResponse]
    total: int

class InstructorLessonItem(LessonResponse):
    editable: bool
    deletable: bool

    @classmethod
    def of_entry(cls, entry: LessonEntry) -> "InstructorLessonItem":
        return cls(
            **LessonResponse.of(entry.lesson).model_dump(),
            editable=entry.editable,
            deletable=entry.deletable,
        )

class WeeklyLessonDayItem(BaseModel):
    day: DayOfWeek
    date: date
    editable: bool
    lessons: List[InstructorLessonItem]

    @classmethod
    def of(cls, day: DayLessons) -> "WeeklyLessonDayItem":
        return cls(
            day=day.day,
            date=day.date,
            editable=day.editable,
            lessons=[InstructorLessonItem.of_entry(e) for e in day.lessons],
        )

class StudentLessonItem(LessonResponse):
    assignable: bool
    cancelable: bool

    @classmethod
    def of_entry(cls, entry: LessonEntry) -> "StudentLessonItem":
        return cls(
            **LessonResponse.of(entry.lesson).model_dump(),
            assignable=entry.assignable,
            cancelable=entry.cancelable,
        )

class StudentWeeklyLessonDayItem(BaseModel):
    day: DayOfWeek
    date: date
    lessons: List[StudentLessonItem]

    @classmethod
    def of(cls, day: DayLessons) -> "StudentWeeklyLessonDayItem":
        return cls(
            day=day.day,
            date=day.date,
            lessons=[StudentLessonItem.of_entry(e) for e in day.lessons],
        )

# ---------- LESSON REQUESTS ----------
class SubmitLessonRequest(CreateLessonRequest):
    pass

class ApproveRequest(BaseModel):
    approve: bool

class LessonRequestResponse(BaseModel):
    id: str
    instructor_id: str
    student_ids: List[str]
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime
    status: RequestStatus
    created_at: Optional[datetime] = None
    can_approve: Optional[bool] = None

    @classmethod
    def of(cls, request: LessonRequest, can_approve: Optional[bool] = None) -> "LessonRequestResponse":
        return cls(
            id=request.id,
            instructor_id=request.instructor_id,
            student_ids=request.student_ids,
            style=request.style,
            type=request.type,
            start_time=request.start_time,
            end_time=request.end_time,
            status=request.status,
            created_at=request.created_at,
            can_approve=can_approve,
        )

class LessonRequestListResponse(BaseModel):
    lesson_requests: List[LessonRequestResponse]
    total: int
