from datetime import date
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.app_logger import get_logger
from app.core.exceptions import ConflictError, NotFoundError, UnprocessableError
from app.core.models import AcademicYear, Holiday, Season

from .promotion import PromotionResult, promote_students
from .schemas import (
    AcademicYearCreate,
    AcademicYearDetailResponse,
    AcademicYearResponse,
    AcademicYearUpdate,
    CreateAcademicYearResponse,
    PromotionCounts,
)

logger = get_logger("academic_years")


def _to_response(ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse.model_validate(ay)


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise UnprocessableError("end_date must be after start_date")


def promotion_message(result: PromotionResult) -> str:
    return f"Promoted {result.promoted} students, graduated {result.graduated} students"


async def _get_or_404(db: AsyncSession, academic_year_id: int) -> AcademicYear:
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        raise NotFoundError(f"Academic year with ID {academic_year_id} not found")
    return ay


async def _deactivate_others(db: AsyncSession, keep_id: Optional[int] = None) -> None:
    stmt = update(AcademicYear).values(is_active=False)
    if keep_id is not None:
        stmt = stmt.where(AcademicYear.id != keep_id)
    await db.execute(stmt)


async def create_academic_year(
    db: AsyncSession,
    payload: AcademicYearCreate,
) -> CreateAcademicYearResponse:
    """
    Create academic year. If is_active, every other year is deactivated in the same
    transaction, so at most one active year exists after commit.
    With auto_promote_students the promotion runs after the year is committed.
    """
    _validate_dates(payload.start_date, payload.end_date)
    existing = await db.execute(select(AcademicYear.id).where(AcademicYear.year == payload.year))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"Academic year {payload.year} already exists")

    if payload.is_active:
        await _deactivate_others(db)
    ay = AcademicYear(
        year=payload.year,
        name=payload.name.strip(),
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=payload.is_active,
    )
    db.add(ay)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Academic year {payload.year} already exists")
    await db.refresh(ay)
    logger.info("Created academic year %s (id=%s, active=%s)", ay.year, ay.id, ay.is_active)

    promotion_results = None
    if payload.auto_promote_students:
        result = await promote_students(db, ay.id)
        promotion_results = PromotionCounts(promoted=result.promoted, graduated=result.graduated)
        await db.refresh(ay)
    return CreateAcademicYearResponse(academic_year=_to_response(ay), promotion_results=promotion_results)


async def list_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    """All years, newest first."""
    result = await db.execute(select(AcademicYear).order_by(AcademicYear.year.desc()))
    return [_to_response(ay) for ay in result.scalars().all()]


async def get_academic_year(db: AsyncSession, academic_year_id: int) -> AcademicYearDetailResponse:
    result = await db.execute(
        select(AcademicYear)
        .options(selectinload(AcademicYear.seasons))
        .where(AcademicYear.id == academic_year_id)
    )
    ay = result.scalar_one_or_none()
    if not ay:
        raise NotFoundError(f"Academic year with ID {academic_year_id} not found")
    return AcademicYearDetailResponse.model_validate(ay)


async def get_active_academic_year(db: AsyncSession) -> Optional[AcademicYear]:
    result = await db.execute(
        select(AcademicYear).where(AcademicYear.is_active.is_(True)).order_by(AcademicYear.id.desc())
    )
    return result.scalars().first()


async def get_current_academic_year(db: AsyncSession) -> Optional[AcademicYearResponse]:
    ay = await get_active_academic_year(db)
    return _to_response(ay) if ay else None


async def update_academic_year(
    db: AsyncSession,
    academic_year_id: int,
    payload: AcademicYearUpdate,
) -> AcademicYearResponse:
    ay = await _get_or_404(db, academic_year_id)
    start_date = payload.start_date or ay.start_date
    end_date = payload.end_date or ay.end_date
    _validate_dates(start_date, end_date)
    if payload.year is not None and payload.year != ay.year:
        taken = await db.execute(select(AcademicYear.id).where(AcademicYear.year == payload.year))
        if taken.scalar_one_or_none() is not None:
            raise ConflictError(f"Academic year {payload.year} already exists")
        ay.year = payload.year
    if payload.name is not None:
        ay.name = payload.name.strip()
    ay.start_date = start_date
    ay.end_date = end_date
    if payload.is_active is True:
        await _deactivate_others(db, keep_id=ay.id)
        ay.is_active = True
    elif payload.is_active is False:
        ay.is_active = False
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Academic year {payload.year} already exists")
    await db.refresh(ay)
    return _to_response(ay)


async def delete_academic_year(db: AsyncSession, academic_year_id: int) -> None:
    """Delete the year with its seasons and their holidays. Classes and enrollments are keyed by
    the integer year and stay untouched."""
    ay = await _get_or_404(db, academic_year_id)
    season_ids = select(Season.id).where(Season.academic_year_id == ay.id)
    await db.execute(delete(Holiday).where(Holiday.season_id.in_(season_ids)))
    await db.execute(delete(Season).where(Season.academic_year_id == ay.id))
    year = ay.year
    await db.execute(delete(AcademicYear).where(AcademicYear.id == academic_year_id))
    await db.commit()
    logger.info("Deleted academic year %s (id=%s)", year, academic_year_id)
