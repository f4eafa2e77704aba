from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_ga_specialist
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import promotion, service
from .schemas import (
    AcademicYearCreate,
    AcademicYearDetailResponse,
    AcademicYearResponse,
    AcademicYearUpdate,
    CreateAcademicYearResponse,
    PromoteErrorResponse,
    PromoteResponse,
)

router = APIRouter(prefix="/api/v1/academic/years", tags=["academic-years"])


def _promote_failed(e: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code,
        content=PromoteErrorResponse(error=e.message).model_dump(),
    )


def _promote_succeeded(result: promotion.PromotionResult) -> PromoteResponse:
    return PromoteResponse(
        promoted=result.promoted,
        graduated=result.graduated,
        message=service.promotion_message(result),
    )


@router.post(
    "",
    response_model=CreateAcademicYearResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_academic_year(
    payload: AcademicYearCreate,
    db: AsyncSession = Depends(get_db),
) -> CreateAcademicYearResponse:
    """Create academic year. With auto_promote_students=true the response carries promotion_results."""
    try:
        return await service.create_academic_year(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AcademicYearResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_academic_years(db: AsyncSession = Depends(get_db)) -> List[AcademicYearResponse]:
    return await service.list_academic_years(db)


@router.get(
    "/current",
    response_model=Optional[AcademicYearResponse],
    dependencies=[Depends(get_current_user)],
)
async def get_current_academic_year(db: AsyncSession = Depends(get_db)) -> Optional[AcademicYearResponse]:
    """The active academic year, or null when none is active."""
    return await service.get_current_academic_year(db)


@router.get(
    "/{academic_year_id}",
    response_model=AcademicYearDetailResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_academic_year(
    academic_year_id: int,
    db: AsyncSession = Depends(get_db),
) -> AcademicYearDetailResponse:
    try:
        return await service.get_academic_year(db, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{academic_year_id}",
    response_model=AcademicYearResponse,
    dependencies=[Depends(require_ga_specialist)],
)
async def update_academic_year(
    academic_year_id: int,
    payload: AcademicYearUpdate,
    db: AsyncSession = Depends(get_db),
) -> AcademicYearResponse:
    try:
        return await service.update_academic_year(db, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{academic_year_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ga_specialist)],
)
async def delete_academic_year(
    academic_year_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete the year together with its seasons and holidays."""
    try:
        await service.delete_academic_year(db, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{academic_year_id}/promote",
    response_model=PromoteResponse,
    responses={404: {"model": PromoteErrorResponse}, 500: {"model": PromoteErrorResponse}},
    dependencies=[Depends(require_ga_specialist)],
)
async def promote_students(
    academic_year_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Promote last year's active students into this academic year."""
    try:
        result = await promotion.promote_students(db, academic_year_id)
    except ServiceError as e:
        return _promote_failed(e)
    return _promote_succeeded(result)


@router.post(
    "/by-year/{year}/promote",
    response_model=PromoteResponse,
    responses={404: {"model": PromoteErrorResponse}, 500: {"model": PromoteErrorResponse}},
    dependencies=[Depends(require_ga_specialist)],
)
async def promote_students_by_year(
    year: int,
    db: AsyncSession = Depends(get_db),
):
    """Same as /{academic_year_id}/promote, addressed by the integer year (e.g. 2026)."""
    try:
        academic_year_id = await promotion.find_academic_year_id_by_year(db, year)
        result = await promotion.promote_students(db, academic_year_id)
    except ServiceError as e:
        return _promote_failed(e)
    return _promote_succeeded(result)
