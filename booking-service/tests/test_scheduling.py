from datetime import date

import pytest

from conftest import NEXT_MONDAY, NEXT_SUNDAY, NEXT_WEDNESDAY, at
from errors import NotFoundError, ValidationError
from intervals import DayOfWeek, TimeRange
from models import Lesson, LessonRequest, LessonType, RequestStatus
from scheduling import next_week_start, week_bounds


def _lesson(repo, lesson_id, instructor_id, day, start, end):
    repo.lessons[lesson_id] = Lesson(
        id=lesson_id,
        instructor_id=instructor_id,
        style="freestyle",
        type=LessonType.GROUP,
        start_time=at(day, start),
        end_time=at(day, end),
    )


def _pending(repo, request_id, instructor_id, day, start, end):
    repo.requests[request_id] = LessonRequest(
        id=request_id,
        instructor_id=instructor_id,
        style="freestyle",
        type=LessonType.GROUP,
        start_time=at(day, start),
        end_time=at(day, end),
        status=RequestStatus.PENDING,
    )


def test_week_bounds_run_sunday_to_saturday() -> None:
    start, end = week_bounds(NEXT_WEDNESDAY)
    assert start == at(NEXT_SUNDAY, "00:00")
    assert end.date() == date(2030, 1, 19)


def test_next_week_start_from_tuesday() -> None:
    assert next_week_start(at(date(2030, 1, 8), "12:00")) == NEXT_SUNDAY


def test_next_week_start_from_sunday_is_the_following_sunday() -> None:
    assert next_week_start(at(NEXT_SUNDAY, "08:00")) == date(2030, 1, 20)


@pytest.mark.asyncio
async def test_available_hours_exclude_confirmed_lessons(repo, services) -> None:
    _lesson(repo, "l1", "ana", NEXT_MONDAY, "10:00", "11:00")
    # another instructor's lesson does not block Ana
    _lesson(repo, "l2", "ben", NEXT_MONDAY, "13:00", "14:00")

    slots = await services.availability.available_hours_for_instructor("ana", NEXT_MONDAY)

    assert slots == [TimeRange("09:00", "10:00"), TimeRange("11:00", "17:00")]


@pytest.mark.asyncio
async def test_excluding_a_lesson_frees_its_window(repo, services) -> None:
    _lesson(repo, "l1", "ana", NEXT_MONDAY, "10:00", "11:00")

    slots = await services.availability.available_hours_for_instructor(
        "ana", NEXT_MONDAY, exclude_lesson_id="l1"
    )

    assert slots == [TimeRange("09:00", "17:00")]


@pytest.mark.asyncio
async def test_available_hours_on_a_day_off_are_empty(services) -> None:
    assert await services.availability.available_hours_for_instructor("ana", NEXT_SUNDAY) == []


@pytest.mark.asyncio
async def test_available_hours_accept_past_dates(services) -> None:
    slots = await services.availability.available_hours_for_instructor("ana", date(2029, 12, 31))
    assert slots == [TimeRange("09:00", "17:00")]


@pytest.mark.asyncio
async def test_available_hours_for_unknown_instructor(services) -> None:
    with pytest.raises(NotFoundError):
        await services.availability.available_hours_for_instructor("nobody", NEXT_MONDAY)


@pytest.mark.asyncio
async def test_pending_requests_block_weekly_but_not_single_day(repo, services) -> None:
    _pending(repo, "r1", "ana", NEXT_MONDAY, "09:00", "10:00")

    single = await services.availability.available_hours_for_instructor("ana", NEXT_MONDAY)
    assert single == [TimeRange("09:00", "17:00")]

    weeks = await services.availability.weekly_availability(NEXT_MONDAY, ["freestyle"], ["ana"])
    monday = next(d for d in weeks[0].weekly_hours if d.day is DayOfWeek.MONDAY)
    assert monday.available_hours == [TimeRange("10:00", "17:00")]


@pytest.mark.asyncio
async def test_weekly_availability_rejects_the_current_week(services) -> None:
    with pytest.raises(ValidationError) as exc:
        await services.availability.weekly_availability(date(2030, 1, 10), ["freestyle"])
    assert "future week" in exc.value.message
    assert exc.value.details["earliest"] == "2030-01-13"


@pytest.mark.asyncio
async def test_weekly_availability_lists_working_days(repo, services) -> None:
    _lesson(repo, "l1", "ana", NEXT_WEDNESDAY, "09:00", "10:00")

    weeks = await services.availability.weekly_availability(NEXT_SUNDAY, ["freestyle"], ["ana"])

    assert len(weeks) == 1
    ana = weeks[0]
    assert ana.instructor_name == "Ana"
    assert [(d.day, d.date) for d in ana.weekly_hours] == [
        (DayOfWeek.MONDAY, NEXT_MONDAY),
        (DayOfWeek.WEDNESDAY, NEXT_WEDNESDAY),
    ]
    assert ana.weekly_hours[1].available_hours == [
        TimeRange("08:00", "09:00"),
        TimeRange("10:00", "12:00"),
        TimeRange("14:00", "18:00"),
    ]


@pytest.mark.asyncio
async def test_instructor_without_the_style_gets_seven_empty_days(services) -> None:
    weeks = await services.availability.weekly_availability(NEXT_MONDAY, ["freestyle"])

    ben = next(w for w in weeks if w.instructor_id == "ben")
    assert len(ben.weekly_hours) == 7
    assert ben.weekly_hours[0].day is DayOfWeek.SUNDAY
    assert ben.weekly_hours[0].date == NEXT_SUNDAY
    assert all(d.available_hours == [] for d in ben.weekly_hours)
