from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_ga_specialist
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SeasonCreate, SeasonResponse, SeasonUpdate
from . import service

router = APIRouter(prefix="/api/v1/academic/seasons", tags=["seasons"])


@router.get(
    "",
    response_model=List[SeasonResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_seasons(
    academic_year_id: Optional[int] = Query(None, description="Filter by academic year"),
    db: AsyncSession = Depends(get_db),
) -> List[SeasonResponse]:
    return await service.list_seasons(db, academic_year_id=academic_year_id)


@router.post(
    "",
    response_model=SeasonResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_season(
    payload: SeasonCreate,
    db: AsyncSession = Depends(get_db),
) -> SeasonResponse:
    try:
        return await service.create_season(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{season_id}",
    response_model=SeasonResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_season(season_id: int, db: AsyncSession = Depends(get_db)) -> SeasonResponse:
    try:
        return await service.get_season(db, season_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{season_id}",
    response_model=SeasonResponse,
    dependencies=[Depends(require_ga_specialist)],
)
async def update_season(
    season_id: int,
    payload: SeasonUpdate,
    db: AsyncSession = Depends(get_db),
) -> SeasonResponse:
    try:
        return await service.update_season(db, season_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{season_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ga_specialist)],
)
async def delete_season(season_id: int, db: AsyncSession = Depends(get_db)) -> None:
    """Delete the season and its holidays."""
    try:
        await service.delete_season(db, season_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
