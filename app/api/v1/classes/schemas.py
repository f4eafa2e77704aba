from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    grade_id: int = Field(..., ge=1)
    school_year: Optional[int] = Field(
        None,
        description="Defaults to the active academic year, or the current calendar year when none is active",
    )


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    grade_id: Optional[int] = Field(None, ge=1)
    school_year: Optional[int] = None


class ClassResponse(BaseModel):
    id: int
    name: str
    grade_id: int
    school_year: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TeacherAssignmentCreate(BaseModel):
    """Assign a teacher (role=teacher) to a class."""

    teacher_id: int
    school_year: Optional[str] = Field(None, max_length=20, description="Defaults to the class's school year")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class TeacherAssignmentResponse(BaseModel):
    id: int
    teacher_id: int
    teacher_name: str
    class_id: int
    school_year: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
