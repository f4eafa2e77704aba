from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import UserRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class UserInfo(BaseModel):
    id: int
    username: str
    name: str
    role: str


class AcademicYearContext(BaseModel):
    """Active academic year at login time; informational only, never cached server-side."""

    id: int
    year: int
    name: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo
    academic_year: Optional[AcademicYearContext] = None
    issued_at: datetime


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller for role checks."""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.GA_SPECIALIST.value
