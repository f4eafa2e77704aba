from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AcademicYearCreate(BaseModel):
    """Create academic year. year must be unique; a new year is active unless is_active=false."""

    year: int = Field(..., ge=1900, le=3000, description="Calendar year the school year starts in, e.g. 2026")
    name: str = Field(..., min_length=1, max_length=50, description="e.g. 2026-2027")
    start_date: date = Field(..., description="Academic year start date")
    end_date: date = Field(..., description="Academic year end date (must be after start_date)")
    is_active: bool = Field(
        True,
        description="Make this the active year. All other years are deactivated in the same transaction.",
    )
    auto_promote_students: bool = Field(
        False,
        description="Run student promotion into this year right after it is created.",
    )


class AcademicYearUpdate(BaseModel):
    year: Optional[int] = Field(None, ge=1900, le=3000, description="Must stay unique across academic years")
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class SeasonSummary(BaseModel):
    id: int
    name: str
    type: str
    start_date: date
    end_date: date
    is_active: bool

    class Config:
        from_attributes = True


class AcademicYearResponse(BaseModel):
    id: int
    year: int
    name: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AcademicYearDetailResponse(AcademicYearResponse):
    seasons: List[SeasonSummary] = []


class PromotionCounts(BaseModel):
    promoted: int
    graduated: int


class CreateAcademicYearResponse(BaseModel):
    """Response when creating an academic year. promotion_results is set only when auto_promote_students=true."""

    academic_year: AcademicYearResponse
    promotion_results: Optional[PromotionCounts] = None


class PromoteResponse(BaseModel):
    success: bool = True
    promoted: int
    graduated: int
    message: str


class PromoteErrorResponse(BaseModel):
    success: bool = False
    error: str
