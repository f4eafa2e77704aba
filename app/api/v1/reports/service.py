"""
Read-only attendance and leave reports.

Attendance rows are filtered by grade through the record's own class; pending
leaves through the student's enrollment in the active academic year.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.attendance.service import COVERING_LEAVE_STATUSES
from app.core.enums import AttendanceStatus, LeaveStatus, PendingLeaveAge
from app.core.exceptions import UnprocessableError
from app.core.models import (
    AcademicYear,
    AttendanceRecord,
    LeaveRequest,
    LeaveType,
    SchoolClass,
    Student,
    StudentClassEnrollment,
)

from .schemas import AttendanceReportRow, PendingLeaveRow, UnresolvedAbsenceRow

PENDING_AGE_DAYS = 3


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def attendance_report(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    grade_ids: Optional[Sequence[int]] = None,
    statuses: Optional[Sequence[AttendanceStatus]] = None,
) -> List[AttendanceReportRow]:
    if end_date < start_date:
        raise UnprocessableError("end_date must be on or after start_date")
    stmt = (
        select(
            AttendanceRecord.id,
            AttendanceRecord.date,
            SchoolClass.name.label("class_name"),
            SchoolClass.grade_id,
            Student.name.label("student_name"),
            AttendanceRecord.status,
            LeaveType.name.label("leave_type_name"),
            LeaveRequest.status.label("leave_status"),
        )
        .join(SchoolClass, AttendanceRecord.class_id == SchoolClass.id)
        .join(Student, AttendanceRecord.student_id == Student.id)
        .outerjoin(LeaveRequest, AttendanceRecord.leave_request_id == LeaveRequest.id)
        .outerjoin(LeaveType, LeaveRequest.leave_type_id == LeaveType.id)
        .where(AttendanceRecord.date >= start_date, AttendanceRecord.date <= end_date)
    )
    if grade_ids:
        stmt = stmt.where(SchoolClass.grade_id.in_(list(grade_ids)))
    if statuses:
        stmt = stmt.where(AttendanceRecord.status.in_([s.value for s in statuses]))
    stmt = stmt.order_by(AttendanceRecord.date.desc(), SchoolClass.grade_id, SchoolClass.name, Student.name)
    result = await db.execute(stmt)
    return [AttendanceReportRow(**row._mapping) for row in result.all()]


async def pending_leaves_report(
    db: AsyncSession,
    age: Optional[PendingLeaveAge] = None,
    grade_ids: Optional[Sequence[int]] = None,
) -> List[PendingLeaveRow]:
    active_year = (
        await db.execute(select(AcademicYear.year).where(AcademicYear.is_active.is_(True)))
    ).scalars().first()
    if grade_ids and active_year is None:
        return []

    stmt = (
        select(
            LeaveRequest.id,
            LeaveRequest.student_id,
            Student.name.label("student_name"),
            SchoolClass.name.label("class_name"),
            SchoolClass.grade_id,
            LeaveType.name.label("leave_type_name"),
            LeaveRequest.start_date,
            LeaveRequest.end_date,
            LeaveRequest.reason,
            LeaveRequest.created_at,
        )
        .join(Student, LeaveRequest.student_id == Student.id)
        .join(LeaveType, LeaveRequest.leave_type_id == LeaveType.id)
        .outerjoin(
            StudentClassEnrollment,
            and_(
                StudentClassEnrollment.student_id == LeaveRequest.student_id,
                StudentClassEnrollment.school_year == active_year,
            ),
        )
        .outerjoin(SchoolClass, StudentClassEnrollment.class_id == SchoolClass.id)
        .where(LeaveRequest.status == LeaveStatus.pending.value)
    )
    now = datetime.utcnow()
    cutoff = now - timedelta(days=PENDING_AGE_DAYS)
    if age is PendingLeaveAge.within_3_days:
        stmt = stmt.where(LeaveRequest.created_at >= cutoff)
    elif age is PendingLeaveAge.over_3_days:
        stmt = stmt.where(LeaveRequest.created_at < cutoff)
    if grade_ids:
        stmt = stmt.where(SchoolClass.grade_id.in_(list(grade_ids)))
    result = await db.execute(stmt.order_by(LeaveRequest.created_at, LeaveRequest.id))
    return [
        PendingLeaveRow(
            **row._mapping,
            days_pending=max((now - _as_naive_utc(row.created_at)).days, 0),
        )
        for row in result.all()
    ]


async def unresolved_absences_report(
    db: AsyncSession,
    grade_ids: Optional[Sequence[int]] = None,
) -> List[UnresolvedAbsenceRow]:
    """Absences with no pending or approved leave request covering the day."""
    covered = exists().where(
        LeaveRequest.student_id == AttendanceRecord.student_id,
        LeaveRequest.start_date <= AttendanceRecord.date,
        LeaveRequest.end_date >= AttendanceRecord.date,
        LeaveRequest.status.in_(COVERING_LEAVE_STATUSES),
    )
    stmt = (
        select(
            AttendanceRecord.id,
            AttendanceRecord.date,
            AttendanceRecord.student_id,
            Student.name.label("student_name"),
            SchoolClass.name.label("class_name"),
            SchoolClass.grade_id,
        )
        .join(SchoolClass, AttendanceRecord.class_id == SchoolClass.id)
        .join(Student, AttendanceRecord.student_id == Student.id)
        .where(AttendanceRecord.status == AttendanceStatus.absent.value, ~covered)
    )
    if grade_ids:
        stmt = stmt.where(SchoolClass.grade_id.in_(list(grade_ids)))
    result = await db.execute(stmt.order_by(AttendanceRecord.date.desc(), Student.name))
    return [UnresolvedAbsenceRow(**row._mapping) for row in result.all()]
