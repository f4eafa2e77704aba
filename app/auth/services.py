from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import AcademicYearContext, LoginRequest, LoginResponse, UserInfo
from app.auth.security import hash_password, token_for_user, verify_password
from app.core.enums import UserRole
from app.core.exceptions import ConflictError, ServiceError
from app.core.models import AcademicYear


async def create_user(
    db: AsyncSession,
    username: str,
    name: str,
    role: UserRole,
    password: str,
) -> User:
    user = User(
        username=username.strip(),
        name=name.strip(),
        role=role.value,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Username '{username}' is already in use")
    await db.refresh(user)
    return user


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find user by username (case-insensitive)
    result = await db.execute(
        select(User).where(func.lower(User.username) == func.lower(payload.username.strip()))
    )
    user: Optional[User] = result.scalar_one_or_none()
    if not user:
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 2. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 3. Check user status
    if not user.is_active:
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    # 4. Active academic year, for the client's context only
    ay_result = await db.execute(select(AcademicYear).where(AcademicYear.is_active.is_(True)))
    active_ay: Optional[AcademicYear] = ay_result.scalars().first()

    issued_at = datetime.now(timezone.utc)
    return LoginResponse(
        access_token=token_for_user(user.id, user.role),
        user=UserInfo(id=user.id, username=user.username, name=user.name, role=user.role),
        academic_year=(
            AcademicYearContext(id=active_ay.id, year=active_ay.year, name=active_ay.name)
            if active_ay
            else None
        ),
        issued_at=issued_at,
    )
