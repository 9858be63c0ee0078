"""
Domain records the scheduling core works on.

These are plain dataclasses, detached from the ORM: the repository maps
database rows to and from them. Instructors and students both take part
in a lesson and each knows how to check its own eligibility for one.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from errors import ConflictError, ValidationError
from intervals import DayOfWeek, WorkingInterval

PRIVATE_CAPACITY = 1
GROUP_CAPACITY = 30
MAX_PENDING_REQUESTS = 2


class LessonType(str, Enum):
    PRIVATE = "private"
    GROUP = "group"

    @property
    def capacity(self) -> int:
        return PRIVATE_CAPACITY if self is LessonType.PRIVATE else GROUP_CAPACITY


class LessonPreference(str, Enum):
    PRIVATE = "private"
    GROUP = "group"
    BOTH_PREFER_PRIVATE = "both_prefer_private"
    BOTH_PREFER_GROUP = "both_prefer_group"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


COMPATIBLE_PREFERENCES = {
    LessonType.PRIVATE: {LessonPreference.PRIVATE, LessonPreference.BOTH_PREFER_PRIVATE},
    LessonType.GROUP: {LessonPreference.GROUP, LessonPreference.BOTH_PREFER_GROUP},
}

# Lesson types a student sees in the weekly lesson view
VISIBLE_TYPES = {
    LessonPreference.PRIVATE: {LessonType.PRIVATE},
    LessonPreference.GROUP: {LessonType.GROUP},
    LessonPreference.BOTH_PREFER_PRIVATE: {LessonType.PRIVATE, LessonType.GROUP},
    LessonPreference.BOTH_PREFER_GROUP: {LessonType.PRIVATE, LessonType.GROUP},
}

# Best match first, used to rank students for a lesson type
PREFERENCE_PRIORITY = {
    LessonType.PRIVATE: [
        LessonPreference.PRIVATE,
        LessonPreference.BOTH_PREFER_PRIVATE,
        LessonPreference.BOTH_PREFER_GROUP,
    ],
    LessonType.GROUP: [
        LessonPreference.GROUP,
        LessonPreference.BOTH_PREFER_GROUP,
        LessonPreference.BOTH_PREFER_PRIVATE,
    ],
}


class Participant(Protocol):
    id: str

    def check_eligibility(self, style: str, lesson_type: LessonType) -> None:
        """Raise ValidationError if this participant cannot take part."""


@dataclass
class Instructor:
    name: str
    expertise: List[str] = field(default_factory=list)
    available_hours: List[WorkingInterval] = field(default_factory=list)
    id: Optional[str] = None

    def check_eligibility(self, style: str, lesson_type: LessonType) -> None:
        if style not in self.expertise:
            raise ValidationError(
                f"Instructor does not have expertise in the selected style: {style}",
                details={"instructor_id": self.id, "style": style},
            )

    def teaches_any(self, styles: List[str]) -> bool:
        return any(style in self.expertise for style in styles)

    def working_days(self) -> List[DayOfWeek]:
        days: List[DayOfWeek] = []
        for interval in self.available_hours:
            if interval.day not in days:
                days.append(interval.day)
        return days


@dataclass
class Student:
    first_name: str
    last_name: str
    preferred_styles: List[str] = field(default_factory=list)
    lesson_preference: LessonPreference = LessonPreference.BOTH_PREFER_GROUP
    id: Optional[str] = None

    def check_eligibility(self, style: str, lesson_type: LessonType) -> None:
        if style not in self.preferred_styles:
            raise ValidationError(
                f"Student {self.id} does not prefer the lesson style: {style}",
                details={"student_id": self.id, "style": style},
            )
        if self.lesson_preference not in COMPATIBLE_PREFERENCES[lesson_type]:
            raise ValidationError(
                f"Student {self.id} preferences do not match a {lesson_type.value} lesson",
                details={
                    "student_id": self.id,
                    "type": lesson_type.value,
                    "lesson_preference": self.lesson_preference.value,
                },
            )


@dataclass
class Lesson:
    instructor_id: str
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime
    student_ids: List[str] = field(default_factory=list)
    id: Optional[str] = None

    def merged(self, **changes) -> "Lesson":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def check_seat_for(self, student: Student) -> None:
        """Raise if ``student`` cannot join: the lesson is full or a bad fit."""
        if len(self.student_ids) >= self.type.capacity:
            message = (
                "Private lesson already has a student."
                if self.type is LessonType.PRIVATE
                else f"Lesson is full (maximum {self.type.capacity} students allowed)."
            )
            raise ConflictError(message, details={"lesson_id": self.id, "capacity": self.type.capacity})
        student.check_eligibility(self.style, self.type)


@dataclass
class LessonRequest:
    instructor_id: str
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime
    student_ids: List[str] = field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_lesson(self) -> Lesson:
        return Lesson(
            instructor_id=self.instructor_id,
            student_ids=list(self.student_ids),
            style=self.style,
            type=self.type,
            start_time=self.start_time,
            end_time=self.end_time,
        )


@dataclass(frozen=True)
class LessonProposal:
    """What a caller asks admission control to accept."""

    instructor_id: str
    style: str
    type: LessonType
    start_time: datetime
    end_time: datetime
    student_ids: List[str] = field(default_factory=list)

    @classmethod
    def of(cls, item) -> "LessonProposal":
        return cls(
            instructor_id=item.instructor_id,
            style=item.style,
            type=item.type,
            start_time=item.start_time,
            end_time=item.end_time,
            student_ids=list(item.student_ids),
        )
