from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.classes.service import teacher_has_class
from app.auth.schemas import CurrentUser
from app.core.app_logger import get_logger
from app.core.enums import AttendanceStatus, LeaveStatus, UserRole
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, UnprocessableError
from app.core.models import AttendanceRecord, LeaveRequest, SchoolClass, Student

from .schemas import AttendanceMark, AttendanceRecordResponse

logger = get_logger("attendance")

# Leave requests in these states excuse an absence / back an on_leave mark.
COVERING_LEAVE_STATUSES = (LeaveStatus.pending.value, LeaveStatus.approved.value)


def _record_to_response(r: AttendanceRecord) -> AttendanceRecordResponse:
    return AttendanceRecordResponse(
        id=r.id,
        student_id=r.student_id,
        student_name=r.student.name,
        class_id=r.class_id,
        date=r.date,
        status=r.status,
        leave_request_id=r.leave_request_id,
        recorded_by_id=r.recorded_by_id,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


async def _check_class_access(db: AsyncSession, current_user: CurrentUser, class_id: int) -> None:
    """GA specialists: any class. Teachers: actively assigned classes only."""
    if current_user.is_admin:
        return
    if current_user.role == UserRole.TEACHER.value:
        if not await teacher_has_class(db, current_user.id, class_id):
            raise ForbiddenError("You can only take attendance for your assigned classes")
        return
    raise ForbiddenError("Insufficient permissions to take attendance")


async def covering_leave_id(db: AsyncSession, student_id: int, on_date: date) -> Optional[int]:
    """Latest pending/approved leave request of the student whose range includes on_date."""
    result = await db.execute(
        select(LeaveRequest.id)
        .where(
            LeaveRequest.student_id == student_id,
            LeaveRequest.start_date <= on_date,
            LeaveRequest.end_date >= on_date,
            LeaveRequest.status.in_(COVERING_LEAVE_STATUSES),
        )
        .order_by(LeaveRequest.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _records_for_day(db: AsyncSession, class_id: int, on_date: date) -> List[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.class_id == class_id, AttendanceRecord.date == on_date)
        .order_by(AttendanceRecord.student_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def mark_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: AttendanceMark,
) -> List[AttendanceRecordResponse]:
    """One record per student per day: marking again updates the existing record."""
    if payload.date > date.today():
        raise UnprocessableError("Cannot mark attendance for future dates")
    if not await db.get(SchoolClass, payload.class_id):
        raise NotFoundError(f"Class with ID {payload.class_id} not found")
    await _check_class_access(db, current_user, payload.class_id)

    # Last entry wins when a student is listed twice.
    statuses: Dict[int, AttendanceStatus] = {e.student_id: e.status for e in payload.records}
    found = await db.execute(select(Student.id).where(Student.id.in_(list(statuses))))
    missing = set(statuses) - set(found.scalars().all())
    if missing:
        raise NotFoundError(f"Students not found: {sorted(missing)}")

    existing_result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.student_id.in_(list(statuses)),
            AttendanceRecord.date == payload.date,
        )
    )
    existing = {r.student_id: r for r in existing_result.scalars().all()}

    for student_id, status in statuses.items():
        leave_id = None
        if status is AttendanceStatus.on_leave:
            leave_id = await covering_leave_id(db, student_id, payload.date)
        record = existing.get(student_id)
        if record is None:
            db.add(
                AttendanceRecord(
                    student_id=student_id,
                    class_id=payload.class_id,
                    date=payload.date,
                    status=status.value,
                    leave_request_id=leave_id,
                    recorded_by_id=current_user.id,
                )
            )
        else:
            record.class_id = payload.class_id
            record.status = status.value
            record.leave_request_id = leave_id
            record.recorded_by_id = current_user.id
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Attendance for {payload.date} changed concurrently; resubmit")
    logger.info(
        "Attendance for class %s on %s: %d records by user %s",
        payload.class_id, payload.date, len(statuses), current_user.id,
    )
    return [_record_to_response(r) for r in await _records_for_day(db, payload.class_id, payload.date)]


async def list_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: int,
    on_date: date,
) -> List[AttendanceRecordResponse]:
    if not await db.get(SchoolClass, class_id):
        raise NotFoundError(f"Class with ID {class_id} not found")
    await _check_class_access(db, current_user, class_id)
    return [_record_to_response(r) for r in await _records_for_day(db, class_id, on_date)]
