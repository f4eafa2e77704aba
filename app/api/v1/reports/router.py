from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.core.enums import AttendanceStatus, PendingLeaveAge
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AttendanceReportRow, PendingLeaveRow, UnresolvedAbsenceRow
from . import service

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/attendance", response_model=List[AttendanceReportRow])
async def attendance_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    grades: Optional[List[int]] = Query(None, description="Grade ids, e.g. ?grades=1&grades=2"),
    statuses: Optional[List[AttendanceStatus]] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[AttendanceReportRow]:
    try:
        return await service.attendance_report(db, start_date, end_date, grade_ids=grades, statuses=statuses)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/pending-leaves", response_model=List[PendingLeaveRow])
async def pending_leaves_report(
    age: Optional[PendingLeaveAge] = Query(None, description="within_3_days or over_3_days; all when omitted"),
    grades: Optional[List[int]] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[PendingLeaveRow]:
    return await service.pending_leaves_report(db, age=age, grade_ids=grades)


@router.get("/unresolved-absences", response_model=List[UnresolvedAbsenceRow])
async def unresolved_absences_report(
    grades: Optional[List[int]] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[UnresolvedAbsenceRow]:
    return await service.unresolved_absences_report(db, grade_ids=grades)
