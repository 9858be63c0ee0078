from datetime import date

import pytest

from conftest import NEXT_MONDAY, NEXT_SUNDAY, NEXT_WEDNESDAY, NOW, at
from errors import NotFoundError
from intervals import DayOfWeek
from models import Lesson, LessonType

THIS_MONDAY = date(2030, 1, 7)
TODAY = NOW.date()
THIS_WEDNESDAY = date(2030, 1, 9)
THIS_THURSDAY = date(2030, 1, 10)


def _store(repo, lesson_id, day, start="10:00", end="11:00", instructor_id="ana", style="freestyle",
           type=LessonType.GROUP, student_ids=()):
    repo.lessons[lesson_id] = Lesson(
        id=lesson_id,
        instructor_id=instructor_id,
        style=style,
        type=type,
        start_time=at(day, start),
        end_time=at(day, end),
        student_ids=list(student_ids),
    )


def _entries(week):
    return {entry.lesson.id: entry for day in week for entry in day.lessons}


@pytest.mark.asyncio
async def test_week_runs_sunday_to_saturday(services) -> None:
    week = await services.lessons.weekly_lessons(NEXT_WEDNESDAY)

    assert [d.day for d in week] == list(DayOfWeek)
    assert week[0].date == NEXT_SUNDAY
    assert week[-1].date == date(2030, 1, 19)
    assert all(d.lessons == [] for d in week)


@pytest.mark.asyncio
async def test_instructor_view_flags(repo, services) -> None:
    _store(repo, "a1", NEXT_MONDAY)
    _store(repo, "b1", NEXT_MONDAY, start="11:00", end="12:00", instructor_id="ben", style="butterfly")
    _store(repo, "a2", NEXT_WEDNESDAY, start="08:00", end="09:00")

    week = await services.lessons.weekly_lessons(NEXT_MONDAY, instructor_id="ana")
    entries = _entries(week)

    assert [d.day for d in week if d.editable] == [DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY]
    assert [e.lesson.id for e in week[1].lessons] == ["a1", "b1"]
    assert (entries["a1"].editable, entries["a1"].deletable) == (True, True)
    assert (entries["b1"].editable, entries["b1"].deletable) == (False, False)
    assert [e.lesson.id for e in week[3].lessons] == ["a2"]


@pytest.mark.asyncio
async def test_past_days_and_lessons_are_locked(repo, services) -> None:
    _store(repo, "yesterday", THIS_MONDAY)
    _store(repo, "today", TODAY, start="09:00", end="10:00")

    week = await services.lessons.weekly_lessons(TODAY, instructor_id="ana")
    entries = _entries(week)

    # Monday has passed and today is locked, Wednesday is still open
    assert [d.day for d in week if d.editable] == [DayOfWeek.WEDNESDAY]
    assert entries["yesterday"].editable is False
    assert entries["today"].editable is True


@pytest.mark.asyncio
async def test_own_only_keeps_the_instructors_lessons(repo, services) -> None:
    _store(repo, "a1", NEXT_MONDAY)
    _store(repo, "b1", NEXT_MONDAY, start="11:00", end="12:00", instructor_id="ben", style="butterfly")

    week = await services.lessons.weekly_lessons(NEXT_MONDAY, instructor_id="ben", own_only=True)

    assert list(_entries(week)) == ["b1"]
    assert week[1].editable is True


@pytest.mark.asyncio
async def test_weekly_lessons_of_unknown_instructor(services) -> None:
    with pytest.raises(NotFoundError):
        await services.lessons.weekly_lessons(NEXT_MONDAY, instructor_id="nobody")


@pytest.mark.asyncio
async def test_student_sees_matching_styles_and_types(repo, services) -> None:
    _store(repo, "group", NEXT_MONDAY, student_ids=["kim"])
    _store(repo, "private", NEXT_MONDAY, start="12:00", end="13:00", type=LessonType.PRIVATE)
    _store(repo, "butterfly", NEXT_MONDAY, start="11:00", end="12:00", instructor_id="ben", style="butterfly")

    entries = _entries(await services.lessons.student_weekly_lessons(NEXT_MONDAY, "gia"))

    assert list(entries) == ["group"]
    assert entries["group"].assignable is True
    assert entries["group"].cancelable is False


@pytest.mark.asyncio
async def test_student_with_both_preferences_sees_both_types(repo, services) -> None:
    _store(repo, "group", NEXT_MONDAY)
    _store(repo, "private", NEXT_MONDAY, start="12:00", end="13:00", type=LessonType.PRIVATE)
    _store(repo, "taken", NEXT_WEDNESDAY, start="08:00", end="09:00", type=LessonType.PRIVATE, student_ids=["sam"])

    entries = _entries(await services.lessons.student_weekly_lessons(NEXT_MONDAY, "lou"))

    assert set(entries) == {"group", "private", "taken"}
    assert entries["private"].assignable is True
    # lou prefers private lessons, joining a group is left to an admin
    assert entries["group"].assignable is False
    assert entries["taken"].assignable is False


@pytest.mark.asyncio
async def test_full_lesson_is_not_assignable(repo, services) -> None:
    _store(repo, "full", NEXT_MONDAY, student_ids=[f"s{i}" for i in range(30)])

    entries = _entries(await services.lessons.student_weekly_lessons(NEXT_MONDAY, "gia"))

    assert entries["full"].assignable is False


@pytest.mark.asyncio
async def test_assigned_lessons_are_cancelable_with_notice(repo, services) -> None:
    _store(repo, "next-week", NEXT_WEDNESDAY, student_ids=["gia"])
    _store(repo, "tomorrow", THIS_WEDNESDAY, student_ids=["gia"])
    _store(repo, "thursday", THIS_THURSDAY, student_ids=["gia"])
    _store(repo, "open", THIS_THURSDAY, start="12:00", end="13:00")

    this_week = _entries(await services.lessons.student_weekly_lessons(TODAY, "gia"))
    next_week = _entries(await services.lessons.student_weekly_lessons(NEXT_MONDAY, "gia"))

    assert next_week["next-week"].cancelable is True
    assert next_week["next-week"].assignable is False
    assert this_week["tomorrow"].cancelable is False
    assert this_week["thursday"].cancelable is True
    # only next week's lessons can be joined
    assert this_week["open"].assignable is False


@pytest.mark.asyncio
async def test_student_view_by_instructor(repo, services) -> None:
    _store(repo, "a1", NEXT_MONDAY)
    _store(repo, "b1", NEXT_MONDAY, start="11:00", end="12:00", instructor_id="ben", style="butterfly")

    entries = _entries(await services.lessons.student_weekly_lessons(NEXT_MONDAY, "kim", instructor_ids=["ben"]))

    assert list(entries) == ["b1"]
    assert entries["b1"].assignable is True


@pytest.mark.asyncio
async def test_student_weekly_lessons_of_unknown_student(services) -> None:
    with pytest.raises(NotFoundError):
        await services.lessons.student_weekly_lessons(NEXT_MONDAY, "nobody")
