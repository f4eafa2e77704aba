from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.core.enums import LeaveStatus


class LeaveTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="e.g. 病假")
    description: Optional[str] = Field(None, max_length=255)


class LeaveTypeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveApply(BaseModel):
    """Leave request for a student. Starts as pending."""

    student_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def end_not_before_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class LeaveReject(BaseModel):
    rejection_reason: Optional[str] = Field(None, max_length=2000)


class LeaveRequestResponse(BaseModel):
    id: int
    student_id: int
    student_name: str
    leave_type_id: int
    leave_type_name: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    rejection_reason: Optional[str] = None
    reviewed_by_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
