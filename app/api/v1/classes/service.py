from datetime import date
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.core.app_logger import get_logger
from app.core.enums import UserRole
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.models import (
    AcademicYear,
    AttendanceRecord,
    Grade,
    SchoolClass,
    StudentClassEnrollment,
    TeacherClassAssignment,
)

from .schemas import (
    ClassCreate,
    ClassResponse,
    ClassUpdate,
    TeacherAssignmentCreate,
    TeacherAssignmentResponse,
)

logger = get_logger("classes")


def _require_admin(current_user: CurrentUser) -> None:
    if not current_user.is_admin:
        raise ForbiddenError()


def _assignment_to_response(a: TeacherClassAssignment, teacher_name: str) -> TeacherAssignmentResponse:
    return TeacherAssignmentResponse(
        id=a.id,
        teacher_id=a.teacher_id,
        teacher_name=teacher_name,
        class_id=a.class_id,
        school_year=a.school_year,
        start_date=a.start_date,
        end_date=a.end_date,
        is_active=a.is_active,
        notes=a.notes,
        created_at=a.created_at,
    )


async def _active_year(db: AsyncSession):
    result = await db.execute(select(AcademicYear.year).where(AcademicYear.is_active.is_(True)))
    return result.scalars().first()


async def _get_or_404(db: AsyncSession, class_id: int) -> SchoolClass:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        raise NotFoundError(f"Class with ID {class_id} not found")
    return obj


async def _ensure_grade(db: AsyncSession, grade_id: int) -> None:
    if not await db.get(Grade, grade_id):
        raise NotFoundError(f"Grade {grade_id} not found")


async def teacher_has_class(db: AsyncSession, teacher_id: int, class_id: int) -> bool:
    """True when the teacher holds an active assignment to the class."""
    result = await db.execute(
        select(TeacherClassAssignment.id).where(
            TeacherClassAssignment.teacher_id == teacher_id,
            TeacherClassAssignment.class_id == class_id,
            TeacherClassAssignment.is_active.is_(True),
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def list_classes(db: AsyncSession, current_user: CurrentUser) -> List[ClassResponse]:
    """
    Classes of the active academic year (all years when none is active).
    GA specialists see every class; teachers only classes actively assigned to them.
    """
    stmt = select(SchoolClass)
    year = await _active_year(db)
    if year is not None:
        stmt = stmt.where(SchoolClass.school_year == year)
    if current_user.role == UserRole.TEACHER.value:
        stmt = stmt.join(
            TeacherClassAssignment, TeacherClassAssignment.class_id == SchoolClass.id
        ).where(
            TeacherClassAssignment.teacher_id == current_user.id,
            TeacherClassAssignment.is_active.is_(True),
        )
    elif not current_user.is_admin:
        return []
    result = await db.execute(stmt.order_by(SchoolClass.grade_id, SchoolClass.name))
    return [ClassResponse.model_validate(c) for c in result.scalars().unique().all()]


async def get_class(db: AsyncSession, class_id: int) -> ClassResponse:
    return ClassResponse.model_validate(await _get_or_404(db, class_id))


async def create_class(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: ClassCreate,
) -> ClassResponse:
    _require_admin(current_user)
    await _ensure_grade(db, payload.grade_id)
    school_year = payload.school_year
    if school_year is None:
        school_year = await _active_year(db) or date.today().year
    obj = SchoolClass(name=payload.name.strip(), grade_id=payload.grade_id, school_year=school_year)
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    logger.info("Created class %s (grade %s, %s)", obj.name, obj.grade_id, obj.school_year)
    return ClassResponse.model_validate(obj)


async def update_class(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: int,
    payload: ClassUpdate,
) -> ClassResponse:
    _require_admin(current_user)
    obj = await _get_or_404(db, class_id)
    if payload.grade_id is not None:
        await _ensure_grade(db, payload.grade_id)
        obj.grade_id = payload.grade_id
    if payload.name is not None:
        obj.name = payload.name.strip()
    if payload.school_year is not None:
        obj.school_year = payload.school_year
    await db.commit()
    await db.refresh(obj)
    return ClassResponse.model_validate(obj)


async def delete_class(db: AsyncSession, current_user: CurrentUser, class_id: int) -> None:
    """Refuses while students are enrolled or attendance was taken; teacher assignments go with the class."""
    _require_admin(current_user)
    await _get_or_404(db, class_id)
    enrolled = await db.execute(
        select(StudentClassEnrollment.id).where(StudentClassEnrollment.class_id == class_id).limit(1)
    )
    if enrolled.scalar_one_or_none() is not None:
        raise ConflictError("Cannot delete class: students are enrolled in it")
    recorded = await db.execute(
        select(AttendanceRecord.id).where(AttendanceRecord.class_id == class_id).limit(1)
    )
    if recorded.scalar_one_or_none() is not None:
        raise ConflictError("Cannot delete class: it has attendance records")
    await db.execute(delete(TeacherClassAssignment).where(TeacherClassAssignment.class_id == class_id))
    await db.execute(delete(SchoolClass).where(SchoolClass.id == class_id))
    await db.commit()


async def list_class_teachers(db: AsyncSession, class_id: int) -> List[TeacherAssignmentResponse]:
    await _get_or_404(db, class_id)
    result = await db.execute(
        select(TeacherClassAssignment, User.name)
        .join(User, TeacherClassAssignment.teacher_id == User.id)
        .where(TeacherClassAssignment.class_id == class_id)
        .order_by(TeacherClassAssignment.id)
    )
    return [_assignment_to_response(a, name) for a, name in result.all()]


async def assign_teacher(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: int,
    payload: TeacherAssignmentCreate,
) -> TeacherAssignmentResponse:
    _require_admin(current_user)
    school_class = await _get_or_404(db, class_id)
    teacher = await db.get(User, payload.teacher_id)
    if not teacher or teacher.role != UserRole.TEACHER.value:
        raise NotFoundError(f"Teacher with ID {payload.teacher_id} not found")
    obj = TeacherClassAssignment(
        teacher_id=teacher.id,
        class_id=school_class.id,
        school_year=payload.school_year or str(school_class.school_year),
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=True,
        notes=payload.notes,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Teacher assignment could not be saved")
    await db.refresh(obj)
    return _assignment_to_response(obj, teacher.name)
