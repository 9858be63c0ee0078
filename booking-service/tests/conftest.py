"""
Shared fixtures.

Every time-dependent test runs against a fixed clock: Tuesday 2030-01-08,
12:00 UTC. The next calendar week therefore starts on Sunday 2030-01-13.
"""
from datetime import date, datetime, timezone

import pytest

from dependencies import build_services
from fakes import InMemoryRepository
from intervals import DayOfWeek, WorkingInterval
from models import Instructor, LessonPreference, Student

NOW = datetime(2030, 1, 8, 12, 0, tzinfo=timezone.utc)
NEXT_SUNDAY = date(2030, 1, 13)
NEXT_MONDAY = date(2030, 1, 14)
NEXT_WEDNESDAY = date(2030, 1, 16)


def at(day: date, clock: str) -> datetime:
    hour, minute = (int(part) for part in clock.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def repo() -> InMemoryRepository:
    repo = InMemoryRepository()
    repo.instructors = {
        "ana": Instructor(
            id="ana",
            name="Ana",
            expertise=["freestyle", "backstroke"],
            available_hours=[
                WorkingInterval(DayOfWeek.MONDAY, "09:00", "17:00"),
                WorkingInterval(DayOfWeek.WEDNESDAY, "08:00", "12:00"),
                WorkingInterval(DayOfWeek.WEDNESDAY, "14:00", "18:00"),
            ],
        ),
        "ben": Instructor(
            id="ben",
            name="Ben",
            expertise=["butterfly"],
            available_hours=[WorkingInterval(DayOfWeek.MONDAY, "10:00", "12:00")],
        ),
    }
    repo.students = {
        "sam": Student(
            id="sam", first_name="Sam", last_name="Reed",
            preferred_styles=["freestyle"], lesson_preference=LessonPreference.PRIVATE,
        ),
        "gia": Student(
            id="gia", first_name="Gia", last_name="Moss",
            preferred_styles=["freestyle", "backstroke"], lesson_preference=LessonPreference.GROUP,
        ),
        "lou": Student(
            id="lou", first_name="Lou", last_name="Park",
            preferred_styles=["freestyle"], lesson_preference=LessonPreference.BOTH_PREFER_PRIVATE,
        ),
        "kim": Student(
            id="kim", first_name="Kim", last_name="Vale",
            preferred_styles=["freestyle", "butterfly"], lesson_preference=LessonPreference.BOTH_PREFER_GROUP,
        ),
    }
    return repo


@pytest.fixture
def services(repo):
    return build_services(repo, clock=lambda: NOW)
