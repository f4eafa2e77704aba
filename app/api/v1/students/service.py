from datetime import date
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.app_logger import get_logger
from app.core.enums import StudentStatus
from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import (
    AttendanceRecord,
    LeaveRequest,
    SchoolClass,
    Student,
    StudentClassEnrollment,
)

from .schemas import (
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentUpdate,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)

logger = get_logger("students")


def _enrollment_to_response(e: StudentClassEnrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=e.id,
        student_id=e.student_id,
        class_id=e.class_id,
        class_name=e.school_class.name,
        grade_id=e.school_class.grade_id,
        school_year=e.school_year,
        created_at=e.created_at,
    )


def _student_to_response(s: Student, with_enrollments: bool = False) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        student_code=s.student_code,
        name=s.name,
        birthday=s.birthday,
        gender=s.gender,
        status=s.status,
        enrollment_date=s.enrollment_date,
        departure_date=s.departure_date,
        departure_reason=s.departure_reason,
        created_at=s.created_at,
        updated_at=s.updated_at,
        enrollments=[_enrollment_to_response(e) for e in s.enrollments] if with_enrollments else None,
    )


async def _get_or_404(db: AsyncSession, student_id: int) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError(f"Student with ID {student_id} not found")
    return student


async def _get_class_or_404(db: AsyncSession, class_id: int) -> SchoolClass:
    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError(f"Class with ID {class_id} not found")
    return school_class


async def _load_enrollment(db: AsyncSession, enrollment_id: int) -> Optional[StudentClassEnrollment]:
    result = await db.execute(
        select(StudentClassEnrollment)
        .where(StudentClassEnrollment.id == enrollment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_students(
    db: AsyncSession,
    status_filter: Optional[StudentStatus] = None,
    include_enrollments: bool = False,
) -> List[StudentResponse]:
    stmt = select(Student)
    if status_filter is not None:
        stmt = stmt.where(Student.status == status_filter.value)
    if include_enrollments:
        stmt = stmt.options(selectinload(Student.enrollments))
    result = await db.execute(stmt.order_by(Student.student_code))
    rows = result.scalars().all()
    return [_student_to_response(s, with_enrollments=include_enrollments) for s in rows]


async def get_student(db: AsyncSession, student_id: int) -> StudentResponse:
    result = await db.execute(
        select(Student)
        .options(selectinload(Student.enrollments))
        .where(Student.id == student_id)
        .execution_options(populate_existing=True)
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError(f"Student with ID {student_id} not found")
    return _student_to_response(student, with_enrollments=True)


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    code = payload.student_code.strip()
    existing = await db.execute(select(Student.id).where(Student.student_code == code))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"Student code '{code}' already exists")
    school_class = await _get_class_or_404(db, payload.class_id) if payload.class_id is not None else None

    student = Student(
        student_code=code,
        name=payload.name.strip(),
        birthday=payload.birthday,
        gender=payload.gender.value,
        status=StudentStatus.active.value,
        enrollment_date=payload.enrollment_date or date.today(),
    )
    db.add(student)
    try:
        await db.flush()
        if school_class is not None:
            db.add(
                StudentClassEnrollment(
                    student_id=student.id,
                    class_id=school_class.id,
                    school_year=school_class.school_year,
                )
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Student code '{code}' already exists")
    logger.info("Created student %s (id=%s)", code, student.id)
    return await get_student(db, student.id)


async def update_student(db: AsyncSession, student_id: int, payload: StudentUpdate) -> StudentResponse:
    student = await _get_or_404(db, student_id)
    if payload.name is not None:
        student.name = payload.name.strip()
    if payload.birthday is not None:
        student.birthday = payload.birthday
    if payload.gender is not None:
        student.gender = payload.gender.value
    if payload.status is not None:
        student.status = payload.status.value
    if payload.departure_date is not None:
        student.departure_date = payload.departure_date
    if payload.departure_reason is not None:
        student.departure_reason = payload.departure_reason
    await db.commit()
    await db.refresh(student)
    return _student_to_response(student)


async def delete_student(db: AsyncSession, student_id: int) -> None:
    """Attendance records, leave requests and enrollments go first, then the student."""
    await _get_or_404(db, student_id)
    await db.execute(delete(AttendanceRecord).where(AttendanceRecord.student_id == student_id))
    await db.execute(delete(LeaveRequest).where(LeaveRequest.student_id == student_id))
    await db.execute(delete(StudentClassEnrollment).where(StudentClassEnrollment.student_id == student_id))
    await db.execute(delete(Student).where(Student.id == student_id))
    await db.commit()
    logger.info("Deleted student id=%s with attendance, leaves and enrollments", student_id)


async def list_enrollments(db: AsyncSession, student_id: int) -> List[EnrollmentResponse]:
    await _get_or_404(db, student_id)
    result = await db.execute(
        select(StudentClassEnrollment)
        .where(StudentClassEnrollment.student_id == student_id)
        .order_by(StudentClassEnrollment.school_year.desc())
    )
    return [_enrollment_to_response(e) for e in result.scalars().all()]


async def create_enrollment(
    db: AsyncSession,
    student_id: int,
    payload: EnrollmentCreate,
) -> EnrollmentResponse:
    """Enroll into a class for the class's school year. A second enrollment in the same year is a conflict."""
    await _get_or_404(db, student_id)
    school_class = await _get_class_or_404(db, payload.class_id)
    school_year = school_class.school_year
    enrollment = StudentClassEnrollment(
        student_id=student_id,
        class_id=school_class.id,
        school_year=school_year,
    )
    db.add(enrollment)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            f"Student {student_id} is already enrolled in school year {school_year}"
        )
    return _enrollment_to_response(await _load_enrollment(db, enrollment.id))


async def update_enrollment(
    db: AsyncSession,
    enrollment_id: int,
    payload: EnrollmentUpdate,
) -> EnrollmentResponse:
    enrollment = await db.get(StudentClassEnrollment, enrollment_id)
    if not enrollment:
        raise NotFoundError(f"Enrollment with ID {enrollment_id} not found")
    school_class = await _get_class_or_404(db, payload.class_id)
    student_id, school_year = enrollment.student_id, school_class.school_year
    enrollment.class_id = school_class.id
    enrollment.school_year = school_year
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            f"Student {student_id} is already enrolled in school year {school_year}"
        )
    return _enrollment_to_response(await _load_enrollment(db, enrollment_id))


async def delete_enrollment(db: AsyncSession, enrollment_id: int) -> None:
    enrollment = await db.get(StudentClassEnrollment, enrollment_id)
    if not enrollment:
        raise NotFoundError(f"Enrollment with ID {enrollment_id} not found")
    await db.execute(delete(StudentClassEnrollment).where(StudentClassEnrollment.id == enrollment_id))
    await db.commit()
