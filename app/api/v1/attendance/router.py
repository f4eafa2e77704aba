from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AttendanceMark, AttendanceRecordResponse
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post("", response_model=List[AttendanceRecordResponse], status_code=status.HTTP_200_OK)
async def mark_attendance(
    payload: AttendanceMark,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceRecordResponse]:
    """Mark attendance for a class and day. Teachers: assigned classes only."""
    try:
        return await service.mark_attendance(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[AttendanceRecordResponse])
async def list_attendance(
    class_id: int = Query(..., alias="classId"),
    on_date: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceRecordResponse]:
    try:
        return await service.list_attendance(db, current_user, class_id, on_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
