import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class HolidayCreate(BaseModel):
    season_id: int
    date: dt.date
    description: str = Field(..., min_length=1, max_length=255)


class HolidayUpdate(BaseModel):
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, min_length=1, max_length=255)


class HolidayResponse(BaseModel):
    id: int
    season_id: int
    date: dt.date
    description: str
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True
