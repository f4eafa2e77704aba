from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_ga_specialist
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import HolidayCreate, HolidayResponse, HolidayUpdate
from . import service

router = APIRouter(prefix="/api/v1/academic/holidays", tags=["holidays"])


@router.get(
    "",
    response_model=List[HolidayResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_holidays(
    season_id: Optional[int] = Query(None, description="Filter by season"),
    db: AsyncSession = Depends(get_db),
) -> List[HolidayResponse]:
    return await service.list_holidays(db, season_id=season_id)


@router.post(
    "",
    response_model=HolidayResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_holiday(
    payload: HolidayCreate,
    db: AsyncSession = Depends(get_db),
) -> HolidayResponse:
    try:
        return await service.create_holiday(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{holiday_id}",
    response_model=HolidayResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_holiday(holiday_id: int, db: AsyncSession = Depends(get_db)) -> HolidayResponse:
    try:
        return await service.get_holiday(db, holiday_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{holiday_id}",
    response_model=HolidayResponse,
    dependencies=[Depends(require_ga_specialist)],
)
async def update_holiday(
    holiday_id: int,
    payload: HolidayUpdate,
    db: AsyncSession = Depends(get_db),
) -> HolidayResponse:
    try:
        return await service.update_holiday(db, holiday_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{holiday_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ga_specialist)],
)
async def delete_holiday(holiday_id: int, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await service.delete_holiday(db, holiday_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
