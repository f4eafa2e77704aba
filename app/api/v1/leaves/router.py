from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_ga_specialist
from app.auth.schemas import CurrentUser
from app.core.enums import LeaveStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import LeaveApply, LeaveReject, LeaveRequestResponse, LeaveTypeCreate, LeaveTypeResponse
from . import service

router = APIRouter(prefix="/api/v1/leaves", tags=["leaves"])


@router.get(
    "/types",
    response_model=List[LeaveTypeResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_leave_types(db: AsyncSession = Depends(get_db)) -> List[LeaveTypeResponse]:
    """Leave types for the apply form dropdown."""
    return await service.list_leave_types(db)


@router.post(
    "/types",
    response_model=LeaveTypeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_leave_type(
    payload: LeaveTypeCreate,
    db: AsyncSession = Depends(get_db),
) -> LeaveTypeResponse:
    try:
        return await service.create_leave_type(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[LeaveRequestResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_leaves(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    student_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[LeaveRequestResponse]:
    return await service.list_leaves(db, status_filter=status_filter, student_id=student_id)


@router.post(
    "",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_user)],
)
async def apply_leave(
    payload: LeaveApply,
    db: AsyncSession = Depends(get_db),
) -> LeaveRequestResponse:
    """File a leave request for a student. It stays pending until reviewed."""
    try:
        return await service.apply_leave(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{leave_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave(
    leave_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_ga_specialist),
) -> LeaveRequestResponse:
    try:
        return await service.approve_leave(db, leave_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{leave_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave(
    leave_id: int,
    payload: Optional[LeaveReject] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_ga_specialist),
) -> LeaveRequestResponse:
    try:
        return await service.reject_leave(
            db, leave_id, current_user, rejection_reason=payload.rejection_reason if payload else None
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
