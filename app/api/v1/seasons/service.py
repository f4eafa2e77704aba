from datetime import date
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnprocessableError
from app.core.models import AcademicYear, Holiday, Season

from .schemas import SeasonCreate, SeasonResponse, SeasonUpdate


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise UnprocessableError("end_date must be after start_date")


async def _get_or_404(db: AsyncSession, season_id: int) -> Season:
    season = await db.get(Season, season_id)
    if not season:
        raise NotFoundError(f"Season with ID {season_id} not found")
    return season


async def list_seasons(db: AsyncSession, academic_year_id: Optional[int] = None) -> List[SeasonResponse]:
    stmt = select(Season)
    if academic_year_id is not None:
        stmt = stmt.where(Season.academic_year_id == academic_year_id)
    stmt = stmt.order_by(Season.start_date)
    result = await db.execute(stmt)
    return [SeasonResponse.model_validate(s) for s in result.scalars().all()]


async def get_season(db: AsyncSession, season_id: int) -> SeasonResponse:
    return SeasonResponse.model_validate(await _get_or_404(db, season_id))


async def create_season(db: AsyncSession, payload: SeasonCreate) -> SeasonResponse:
    _validate_dates(payload.start_date, payload.end_date)
    if not await db.get(AcademicYear, payload.academic_year_id):
        raise NotFoundError(f"Academic year with ID {payload.academic_year_id} not found")
    season = Season(
        academic_year_id=payload.academic_year_id,
        name=payload.name.strip(),
        type=payload.type.strip(),
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=payload.is_active,
    )
    db.add(season)
    await db.commit()
    await db.refresh(season)
    return SeasonResponse.model_validate(season)


async def update_season(db: AsyncSession, season_id: int, payload: SeasonUpdate) -> SeasonResponse:
    season = await _get_or_404(db, season_id)
    start_date = payload.start_date or season.start_date
    end_date = payload.end_date or season.end_date
    _validate_dates(start_date, end_date)
    if payload.name is not None:
        season.name = payload.name.strip()
    if payload.type is not None:
        season.type = payload.type.strip()
    if payload.is_active is not None:
        season.is_active = payload.is_active
    season.start_date = start_date
    season.end_date = end_date
    await db.commit()
    await db.refresh(season)
    return SeasonResponse.model_validate(season)


async def delete_season(db: AsyncSession, season_id: int) -> None:
    """Holidays of the season go first, then the season itself."""
    await _get_or_404(db, season_id)
    await db.execute(delete(Holiday).where(Holiday.season_id == season_id))
    await db.execute(delete(Season).where(Season.id == season_id))
    await db.commit()
