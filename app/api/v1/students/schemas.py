from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import Gender, StudentStatus


class StudentCreate(BaseModel):
    student_code: str = Field(..., min_length=1, max_length=50, description="School-issued code, e.g. T11403")
    name: str = Field(..., min_length=1, max_length=100)
    birthday: date
    gender: Gender
    enrollment_date: Optional[date] = Field(None, description="Defaults to today")
    class_id: Optional[int] = Field(None, description="Enroll into this class for its school year")


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    birthday: Optional[date] = None
    gender: Optional[Gender] = None
    status: Optional[StudentStatus] = None
    departure_date: Optional[date] = None
    departure_reason: Optional[str] = Field(None, max_length=255)


class EnrollmentCreate(BaseModel):
    class_id: int


class EnrollmentUpdate(BaseModel):
    class_id: int


class EnrollmentResponse(BaseModel):
    id: int
    student_id: int
    class_id: int
    class_name: str
    grade_id: int
    school_year: int
    created_at: datetime


class StudentResponse(BaseModel):
    """enrollments is null unless requested."""

    id: int
    student_code: str
    name: str
    birthday: date
    gender: str
    status: str
    enrollment_date: date
    departure_date: Optional[date] = None
    departure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    enrollments: Optional[List[EnrollmentResponse]] = None
