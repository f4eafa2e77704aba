import datetime as dt
from typing import Optional

from pydantic import BaseModel

from app.core.enums import AttendanceStatus, LeaveStatus


class AttendanceReportRow(BaseModel):
    id: int
    date: dt.date
    class_name: str
    grade_id: int
    student_name: str
    status: AttendanceStatus
    leave_type_name: Optional[str] = None
    leave_status: Optional[LeaveStatus] = None


class PendingLeaveRow(BaseModel):
    id: int
    student_id: int
    student_name: str
    class_name: Optional[str] = None
    grade_id: Optional[int] = None
    leave_type_name: str
    start_date: dt.date
    end_date: dt.date
    reason: Optional[str] = None
    created_at: dt.datetime
    days_pending: int


class UnresolvedAbsenceRow(BaseModel):
    id: int
    date: dt.date
    student_id: int
    student_name: str
    class_name: str
    grade_id: int
