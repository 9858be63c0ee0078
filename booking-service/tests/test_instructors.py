import pytest

from conftest import NEXT_MONDAY, at
from errors import ConflictError, NotFoundError, ValidationError
from intervals import DayOfWeek, WorkingInterval
from models import Lesson, LessonRequest, LessonType, RequestStatus


@pytest.mark.asyncio
async def test_add_instructor_sorts_hours(repo, services) -> None:
    instructor = await services.instructors.add_instructor(
        "Cleo",
        ["breaststroke"],
        [
            WorkingInterval(DayOfWeek.FRIDAY, "13:00", "15:00"),
            WorkingInterval(DayOfWeek.TUESDAY, "09:00", "12:00"),
            WorkingInterval(DayOfWeek.FRIDAY, "08:00", "10:00"),
        ],
    )

    assert instructor.name == "Cleo"
    assert [str(h.range) for h in repo.instructors[instructor.id].available_hours] == [
        "09:00-12:00", "08:00-10:00", "13:00-15:00",
    ]
    assert repo.instructors[instructor.id].working_days() == [DayOfWeek.TUESDAY, DayOfWeek.FRIDAY]


@pytest.mark.asyncio
async def test_duplicate_names_get_a_suffix(services) -> None:
    first = await services.instructors.add_instructor("Ana", ["freestyle"])
    second = await services.instructors.add_instructor("Ana", ["freestyle"])
    assert (first.name, second.name) == ("Ana(1)", "Ana(2)")


@pytest.mark.asyncio
async def test_overlapping_hours_are_not_saved(repo, services) -> None:
    with pytest.raises(ValidationError):
        await services.instructors.add_instructor(
            "Cleo",
            ["breaststroke"],
            [
                WorkingInterval(DayOfWeek.MONDAY, "09:00", "10:01"),
                WorkingInterval(DayOfWeek.MONDAY, "10:00", "11:00"),
            ],
        )
    assert set(repo.instructors) == {"ana", "ben"}


@pytest.mark.asyncio
async def test_update_replaces_hours(repo, services) -> None:
    await services.instructors.update_instructor(
        "ana", available_hours=[WorkingInterval(DayOfWeek.THURSDAY, "10:00", "14:00")]
    )

    assert repo.instructors["ana"].available_hours == [WorkingInterval(DayOfWeek.THURSDAY, "10:00", "14:00")]
    assert repo.instructors["ana"].expertise == ["freestyle", "backstroke"]


@pytest.mark.asyncio
async def test_rename_to_a_taken_name(repo, services) -> None:
    instructor = await services.instructors.update_instructor("ben", name="Ana")
    assert instructor.name == "Ana(1)"


@pytest.mark.asyncio
async def test_find_available_instructors(services) -> None:
    find = services.instructors.find_available_instructors

    assert [i.id for i in await find(DayOfWeek.MONDAY, "10:00", ["freestyle"])] == ["ana"]
    assert [i.id for i in await find(DayOfWeek.MONDAY, "12:00", ["butterfly"])] == ["ben"]
    assert await find(DayOfWeek.MONDAY, "12:01", ["butterfly"]) == []
    assert await find(DayOfWeek.MONDAY, "10:00", ["freestyle", "butterfly"]) == []
    assert await find(DayOfWeek.SUNDAY, "10:00", ["freestyle"]) == []


@pytest.mark.asyncio
async def test_working_days(services) -> None:
    assert await services.instructors.working_days("ana") == [DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY]


@pytest.mark.asyncio
async def test_remove_instructor(repo, services) -> None:
    await services.instructors.remove_instructor("ben")
    assert "ben" not in repo.instructors
    with pytest.raises(NotFoundError):
        await services.instructors.remove_instructor("ben")


@pytest.mark.asyncio
async def test_instructor_with_a_lesson_is_kept(repo, services) -> None:
    repo.lessons["l1"] = Lesson(
        id="l1", instructor_id="ana", style="freestyle", type=LessonType.GROUP,
        start_time=at(NEXT_MONDAY, "10:00"), end_time=at(NEXT_MONDAY, "11:00"),
    )

    with pytest.raises(ConflictError) as exc:
        await services.instructors.remove_instructor("ana")

    assert exc.value.details == {"instructor_id": "ana"}
    assert "ana" in repo.instructors


@pytest.mark.asyncio
async def test_instructor_with_a_request_is_kept(repo, services) -> None:
    repo.requests["r1"] = LessonRequest(
        id="r1", instructor_id="ana", style="freestyle", type=LessonType.GROUP,
        start_time=at(NEXT_MONDAY, "10:00"), end_time=at(NEXT_MONDAY, "11:00"),
        student_ids=["gia"], status=RequestStatus.REJECTED,
    )

    with pytest.raises(ConflictError):
        await services.instructors.remove_instructor("ana")
    assert "ana" in repo.instructors
