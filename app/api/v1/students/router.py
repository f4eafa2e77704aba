from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_ga_specialist
from app.core.enums import StudentStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentUpdate,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get(
    "",
    response_model=List[StudentResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_students(
    status_filter: Optional[StudentStatus] = Query(None, alias="status", description="Filter by student status"),
    include_enrollments: bool = Query(False, description="Embed each student's enrollments"),
    db: AsyncSession = Depends(get_db),
) -> List[StudentResponse]:
    return await service.list_students(db, status_filter=status_filter, include_enrollments=include_enrollments)


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/enrollments/{enrollment_id}",
    response_model=EnrollmentResponse,
    dependencies=[Depends(require_ga_specialist)],
)
async def update_enrollment(
    enrollment_id: int,
    payload: EnrollmentUpdate,
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    try:
        return await service.update_enrollment(db, enrollment_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/enrollments/{enrollment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ga_specialist)],
)
async def delete_enrollment(enrollment_id: int, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await service.delete_enrollment(db, enrollment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_student(student_id: int, db: AsyncSession = Depends(get_db)) -> StudentResponse:
    try:
        return await service.get_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_ga_specialist)],
)
async def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.update_student(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ga_specialist)],
)
async def delete_student(student_id: int, db: AsyncSession = Depends(get_db)) -> None:
    """Delete the student with all attendance records, leave requests and enrollments."""
    try:
        await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}/enrollments",
    response_model=List[EnrollmentResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_enrollments(student_id: int, db: AsyncSession = Depends(get_db)) -> List[EnrollmentResponse]:
    try:
        return await service.list_enrollments(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{student_id}/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_ga_specialist)],
)
async def create_enrollment(
    student_id: int,
    payload: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    try:
        return await service.create_enrollment(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
