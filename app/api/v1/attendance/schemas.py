import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import AttendanceStatus


class AttendanceEntry(BaseModel):
    student_id: int
    status: AttendanceStatus


class AttendanceMark(BaseModel):
    """Mark attendance for one class on one day. Existing records for the day are updated."""

    class_id: int
    date: dt.date
    records: List[AttendanceEntry] = Field(..., min_length=1)


class AttendanceRecordResponse(BaseModel):
    id: int
    student_id: int
    student_name: str
    class_id: int
    date: dt.date
    status: AttendanceStatus
    leave_request_id: Optional[int] = None
    recorded_by_id: Optional[int] = None
    created_at: dt.datetime
    updated_at: dt.datetime
