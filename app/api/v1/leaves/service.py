"""Leave types, student leave requests and their review by GA specialists."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.app_logger import get_logger
from app.core.enums import LeaveStatus
from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import LeaveRequest, LeaveType, Student

from .schemas import LeaveApply, LeaveRequestResponse, LeaveTypeCreate, LeaveTypeResponse

logger = get_logger("leaves")


def _request_to_response(r: LeaveRequest) -> LeaveRequestResponse:
    return LeaveRequestResponse(
        id=r.id,
        student_id=r.student_id,
        student_name=r.student.name,
        leave_type_id=r.leave_type_id,
        leave_type_name=r.leave_type.name,
        start_date=r.start_date,
        end_date=r.end_date,
        reason=r.reason,
        status=r.status,
        rejection_reason=r.rejection_reason,
        reviewed_by_id=r.reviewed_by_id,
        reviewed_at=r.reviewed_at,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


async def get_leave_request(db: AsyncSession, leave_id: int) -> Optional[LeaveRequest]:
    return (await db.execute(
        select(LeaveRequest)
        .where(LeaveRequest.id == leave_id)
        .execution_options(populate_existing=True)
    )).scalar_one_or_none()


async def list_leave_types(db: AsyncSession) -> List[LeaveTypeResponse]:
    result = await db.execute(select(LeaveType).order_by(LeaveType.id))
    return [LeaveTypeResponse.model_validate(lt) for lt in result.scalars().all()]


async def create_leave_type(db: AsyncSession, payload: LeaveTypeCreate) -> LeaveTypeResponse:
    lt = LeaveType(name=payload.name.strip(), description=payload.description)
    db.add(lt)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Leave type '{payload.name.strip()}' already exists")
    await db.refresh(lt)
    return LeaveTypeResponse.model_validate(lt)


async def apply_leave(db: AsyncSession, payload: LeaveApply) -> LeaveRequestResponse:
    if not await db.get(Student, payload.student_id):
        raise NotFoundError(f"Student with ID {payload.student_id} not found")
    if not await db.get(LeaveType, payload.leave_type_id):
        raise NotFoundError(f"Leave type with ID {payload.leave_type_id} not found")
    req = LeaveRequest(
        student_id=payload.student_id,
        leave_type_id=payload.leave_type_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        status=LeaveStatus.pending.value,
    )
    db.add(req)
    await db.commit()
    logger.info("Leave request %s filed for student %s", req.id, req.student_id)
    return _request_to_response(await get_leave_request(db, req.id))


async def list_leaves(
    db: AsyncSession,
    status_filter: Optional[LeaveStatus] = None,
    student_id: Optional[int] = None,
) -> List[LeaveRequestResponse]:
    stmt = select(LeaveRequest)
    if status_filter is not None:
        stmt = stmt.where(LeaveRequest.status == status_filter.value)
    if student_id is not None:
        stmt = stmt.where(LeaveRequest.student_id == student_id)
    result = await db.execute(stmt.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()))
    return [_request_to_response(r) for r in result.scalars().all()]


async def _review(
    db: AsyncSession,
    leave_id: int,
    reviewer: CurrentUser,
    new_status: LeaveStatus,
    rejection_reason: Optional[str] = None,
) -> LeaveRequestResponse:
    req = await get_leave_request(db, leave_id)
    if not req:
        raise NotFoundError(f"Leave request with ID {leave_id} not found")
    if req.status != LeaveStatus.pending.value:
        raise ConflictError(f"Only pending leave can be {new_status.value}; this one is {req.status}")
    req.status = new_status.value
    req.rejection_reason = rejection_reason
    req.reviewed_by_id = reviewer.id
    req.reviewed_at = datetime.utcnow()
    await db.commit()
    logger.info("Leave request %s %s by user %s", leave_id, new_status.value, reviewer.id)
    return _request_to_response(await get_leave_request(db, leave_id))


async def approve_leave(db: AsyncSession, leave_id: int, reviewer: CurrentUser) -> LeaveRequestResponse:
    return await _review(db, leave_id, reviewer, LeaveStatus.approved)


async def reject_leave(
    db: AsyncSession,
    leave_id: int,
    reviewer: CurrentUser,
    rejection_reason: Optional[str] = None,
) -> LeaveRequestResponse:
    return await _review(db, leave_id, reviewer, LeaveStatus.rejected, rejection_reason=rejection_reason)
