from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.models import Holiday, Season

from .schemas import HolidayCreate, HolidayResponse, HolidayUpdate


async def _get_or_404(db: AsyncSession, holiday_id: int) -> Holiday:
    holiday = await db.get(Holiday, holiday_id)
    if not holiday:
        raise NotFoundError(f"Holiday with ID {holiday_id} not found")
    return holiday


async def list_holidays(db: AsyncSession, season_id: Optional[int] = None) -> List[HolidayResponse]:
    stmt = select(Holiday)
    if season_id is not None:
        stmt = stmt.where(Holiday.season_id == season_id)
    result = await db.execute(stmt.order_by(Holiday.date))
    return [HolidayResponse.model_validate(h) for h in result.scalars().all()]


async def get_holiday(db: AsyncSession, holiday_id: int) -> HolidayResponse:
    return HolidayResponse.model_validate(await _get_or_404(db, holiday_id))


async def create_holiday(db: AsyncSession, payload: HolidayCreate) -> HolidayResponse:
    if not await db.get(Season, payload.season_id):
        raise NotFoundError(f"Season with ID {payload.season_id} not found")
    holiday = Holiday(
        season_id=payload.season_id,
        date=payload.date,
        description=payload.description.strip(),
    )
    db.add(holiday)
    await db.commit()
    await db.refresh(holiday)
    return HolidayResponse.model_validate(holiday)


async def update_holiday(db: AsyncSession, holiday_id: int, payload: HolidayUpdate) -> HolidayResponse:
    holiday = await _get_or_404(db, holiday_id)
    if payload.date is not None:
        holiday.date = payload.date
    if payload.description is not None:
        holiday.description = payload.description.strip()
    await db.commit()
    await db.refresh(holiday)
    return HolidayResponse.model_validate(holiday)


async def delete_holiday(db: AsyncSession, holiday_id: int) -> None:
    await _get_or_404(db, holiday_id)
    await db.execute(delete(Holiday).where(Holiday.id == holiday_id))
    await db.commit()
