from datetime import date
from typing import List

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years import promotion
from app.api.v1.academic_years.promotion import (
    ClassNamingPolicy,
    PromotionPolicy,
    PromotionStage,
    find_academic_year_id_by_year,
    promote_students,
)
from app.core.exceptions import NotFoundError, UnprocessableError
from app.core.models import SchoolClass, Student, StudentClassEnrollment


async def _classes(db: AsyncSession, school_year: int) -> List[SchoolClass]:
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.school_year == school_year).order_by(SchoolClass.grade_id, SchoolClass.id)
    )
    return list(result.scalars().all())


async def _enrollments(db: AsyncSession, student_id: int, school_year: int) -> List[StudentClassEnrollment]:
    result = await db.execute(
        select(StudentClassEnrollment).where(
            StudentClassEnrollment.student_id == student_id,
            StudentClassEnrollment.school_year == school_year,
        )
    )
    return list(result.scalars().all())


async def _count_enrollments(db: AsyncSession, school_year: int) -> int:
    result = await db.execute(
        select(func.count(StudentClassEnrollment.id)).where(StudentClassEnrollment.school_year == school_year)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_bootstrap_without_previous_year_classes(db_session: AsyncSession, make_year) -> None:
    target = await make_year(2026, is_active=True)

    result = await promote_students(db_session, target.id)

    assert (result.promoted, result.graduated) == (0, 0)
    assert result.stage is PromotionStage.NO_PRIOR_YEAR
    classes = await _classes(db_session, 2026)
    assert [c.grade_id for c in classes] == list(range(1, 13))
    assert classes[0].name == "1A班"

    # Running again creates nothing new.
    again = await promote_students(db_session, target.id)
    assert (again.promoted, again.graduated, again.classes_created) == (0, 0, 0)
    assert len(await _classes(db_session, 2026)) == 12


@pytest.mark.asyncio
async def test_grade_advancement_clones_previous_year(
    db_session: AsyncSession, make_year, make_class, make_student
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    fifth = await make_class(5, 2025, name="5-Maple")
    student = await make_student(fifth)

    result = await promote_students(db_session, target.id)

    assert (result.promoted, result.graduated) == (1, 0)
    assert result.stage is PromotionStage.NORMAL_PROMOTION
    classes = await _classes(db_session, 2026)
    assert {c.grade_id for c in classes} == set(range(1, 13))
    names = {c.grade_id: c.name for c in classes}
    assert names[5] == "5-Maple"
    assert names[6] == "6A"

    enrollments = await _enrollments(db_session, student.id, 2026)
    assert len(enrollments) == 1
    promoted_into = await db_session.get(SchoolClass, enrollments[0].class_id)
    assert promoted_into.grade_id == 6
    # Last year's placement is untouched.
    assert len(await _enrollments(db_session, student.id, 2025)) == 1


@pytest.mark.asyncio
async def test_top_grade_graduates(db_session: AsyncSession, make_year, make_class, make_student) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    twelfth = await make_class(12, 2025)
    senior = await make_student(twelfth)

    result = await promote_students(db_session, target.id)

    assert (result.promoted, result.graduated) == (0, 1)
    await db_session.refresh(senior)
    assert senior.status == "graduated"
    assert senior.departure_date is not None
    assert senior.departure_reason == "畢業"
    assert await _enrollments(db_session, senior.id, 2026) == []


@pytest.mark.asyncio
async def test_second_run_is_idempotent(db_session: AsyncSession, make_year, make_class, make_student) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    third = await make_class(3, 2025)
    twelfth = await make_class(12, 2025)
    await make_student(third)
    await make_student(third)
    await make_student(twelfth)

    first = await promote_students(db_session, target.id)
    assert (first.promoted, first.graduated) == (2, 1)

    second = await promote_students(db_session, target.id)
    assert (second.promoted, second.graduated) == (0, 0)
    assert second.skipped == 2
    assert await _count_enrollments(db_session, 2026) == 2


@pytest.mark.asyncio
async def test_rerun_only_promotes_newly_eligible_students(
    db_session: AsyncSession, make_year, make_class, make_student
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    fifth = await make_class(5, 2025)
    await make_student(fifth)
    first = await promote_students(db_session, target.id)
    assert (first.promoted, first.graduated) == (1, 0)

    late_arrival = await make_student(fifth)
    second = await promote_students(db_session, target.id)

    assert (second.promoted, second.graduated) == (1, 0)
    assert second.skipped == 1
    placed = await _enrollments(db_session, late_arrival.id, 2026)
    assert len(placed) == 1
    assert await _count_enrollments(db_session, 2026) == 2


@pytest.mark.asyncio
async def test_duplicate_enrollments_are_ignored_on_insert(
    db_session: AsyncSession, make_year, make_class, make_student, monkeypatch
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    fifth = await make_class(5, 2025)
    await make_student(fifth)
    await make_student(fifth)
    first = await promote_students(db_session, target.id)
    assert first.promoted == 2

    async def nobody_enrolled(db, school_year):
        return set()

    # Without the read-side check every student reaches the insert a second time.
    monkeypatch.setattr(promotion, "_students_enrolled_in", nobody_enrolled)
    second = await promote_students(db_session, target.id)

    assert (second.promoted, second.graduated) == (0, 0)
    assert second.skipped == 2
    assert await _count_enrollments(db_session, 2026) == 2


@pytest.mark.asyncio
async def test_graduation_leaves_already_graduated_students_untouched(
    db_session: AsyncSession, make_year, make_class, make_student, monkeypatch
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    twelfth = await make_class(12, 2025)
    senior = await make_student(twelfth)
    senior.status = "graduated"
    senior.departure_date = date(2025, 6, 30)
    senior.departure_reason = "Graduated early"
    await db_session.commit()
    senior_id = senior.id

    async def stale_candidates(db, school_year):
        return [(senior_id, 12)]

    # The candidate list was read before another run graduated the student.
    monkeypatch.setattr(promotion, "_active_enrollments", stale_candidates)
    result = await promote_students(db_session, target.id)

    assert (result.promoted, result.graduated) == (0, 0)
    assert result.skipped == 1
    await db_session.refresh(senior)
    assert senior.status == "graduated"
    assert senior.departure_date == date(2025, 6, 30)
    assert senior.departure_reason == "Graduated early"


@pytest.mark.asyncio
async def test_inactive_students_stay_behind(db_session: AsyncSession, make_year, make_class, make_student) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    fourth = await make_class(4, 2025)
    leaver = await make_student(fourth, status="transferred_out")

    result = await promote_students(db_session, target.id)

    assert (result.promoted, result.graduated) == (0, 0)
    assert await _enrollments(db_session, leaver.id, 2026) == []


@pytest.mark.asyncio
async def test_student_already_placed_in_target_year_is_skipped(
    db_session: AsyncSession, make_year, make_class, make_student
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    second_grade = await make_class(2, 2025)
    student = await make_student(second_grade)
    # Admin placed the student (in a repeat class) before the rollover.
    repeat = await make_class(2, 2026, name="2-Repeat")
    db_session.add(StudentClassEnrollment(student_id=student.id, class_id=repeat.id, school_year=2026))
    await db_session.commit()

    result = await promote_students(db_session, target.id)

    assert result.promoted == 0
    enrollments = await _enrollments(db_session, student.id, 2026)
    assert [e.class_id for e in enrollments] == [repeat.id]


@pytest.mark.asyncio
async def test_partial_target_classes_are_completed(
    db_session: AsyncSession, make_year, make_class, make_student
) -> None:
    await make_year(2025)
    target = await make_year(2026, is_active=True)
    first_grade = await make_class(1, 2025)
    student = await make_student(first_grade)
    special = await make_class(2, 2026, name="2-Special")

    result = await promote_students(db_session, target.id)

    assert result.stage is PromotionStage.PARTIAL_CLASSES
    assert result.promoted == 1
    classes = await _classes(db_session, 2026)
    assert len(classes) == 12
    assert [c.id for c in classes if c.grade_id == 2] == [special.id]
    assert {c.name for c in classes if c.grade_id == 3} == {"3A班"}
    enrollments = await _enrollments(db_session, student.id, 2026)
    assert enrollments[0].class_id == special.id


@pytest.mark.asyncio
async def test_naming_overrides_win(db_session: AsyncSession, make_year) -> None:
    target = await make_year(2026, is_active=True)
    policy = PromotionPolicy(naming=ClassNamingPolicy(overrides={1: "一年{grade_id}班"}))

    await promote_students(db_session, target.id, policy=policy)

    names = {c.grade_id: c.name for c in await _classes(db_session, 2026)}
    assert names[1] == "一年1班"
    assert names[2] == "2A班"


@pytest.mark.asyncio
async def test_failure_rolls_back_and_keeps_class_skeleton(
    db_session: AsyncSession, make_year, make_class, make_student
) -> None:
    await make_year(2025)
    target_id = (await make_year(2026, is_active=True)).id
    twelfth = await make_class(12, 2025)
    eleventh = await make_class(11, 2025)
    student_ids = [(await make_student(twelfth)).id, (await make_student(eleventh)).id]
    # Ceiling above the last seeded grade: grade 13 has no Grade row.
    policy = PromotionPolicy(max_grade=13)

    with pytest.raises(UnprocessableError):
        await promote_students(db_session, target_id, policy=policy)

    assert await _count_enrollments(db_session, 2026) == 0
    classes = await _classes(db_session, 2026)
    assert sorted(c.grade_id for c in classes) == list(range(1, 13))
    statuses = await db_session.execute(select(Student.status).where(Student.id.in_(student_ids)))
    assert statuses.scalars().all() == ["active", "active"]


@pytest.mark.asyncio
async def test_unknown_academic_year(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await promote_students(db_session, 999)


@pytest.mark.asyncio
async def test_find_academic_year_id_by_year(db_session: AsyncSession, make_year) -> None:
    ay = await make_year(2027)
    assert await find_academic_year_id_by_year(db_session, 2027) == ay.id
    with pytest.raises(NotFoundError):
        await find_academic_year_id_by_year(db_session, 1999)
