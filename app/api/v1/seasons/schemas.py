from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class SeasonCreate(BaseModel):
    academic_year_id: int
    name: str = Field(..., min_length=1, max_length=100, description="e.g. 上學期")
    type: str = Field(..., min_length=1, max_length=50, description="e.g. semester, summer")
    start_date: date
    end_date: date
    is_active: bool = True


class SeasonUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class SeasonResponse(BaseModel):
    id: int
    academic_year_id: int
    name: str
    type: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
