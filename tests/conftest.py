import os
from datetime import date
from typing import AsyncGenerator, Dict, Optional

# Settings are read at import time; give the app a database and a signing key first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import User
from app.auth.security import token_for_user
from app.auth.services import create_user
from app.core.enums import UserRole
from app.core.models import AcademicYear, Grade, LeaveType, SchoolClass, Student, StudentClassEnrollment
from app.db.seed_reference import LEAVE_TYPES, grade_rows
from app.db.session import Base, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, seeded with grades and leave types.

    One engine with StaticPool so every connection sees the same in-memory database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        session.add_all([Grade(id=grade_id, name=name) for grade_id, name in grade_rows()])
        session.add_all([LeaveType(name=name, description=description) for name, description in LEAVE_TYPES])
        await session.commit()

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "ga.admin", "GA Admin", UserRole.GA_SPECIALIST, "AdminPass123")


@pytest.fixture()
async def teacher_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "t.wang", "Teacher Wang", UserRole.TEACHER, "TeacherPass123")


def _bearer(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for_user(user.id, user.role)}"}


@pytest.fixture()
def admin_headers(admin_user: User) -> Dict[str, str]:
    return _bearer(admin_user)


@pytest.fixture()
def teacher_headers(teacher_user: User) -> Dict[str, str]:
    return _bearer(teacher_user)


@pytest.fixture()
def make_year(db_session: AsyncSession):
    async def _make(year: int, is_active: bool = False) -> AcademicYear:
        ay = AcademicYear(
            year=year,
            name=f"{year}-{year + 1}",
            start_date=date(year, 8, 1),
            end_date=date(year + 1, 7, 31),
            is_active=is_active,
        )
        db_session.add(ay)
        await db_session.commit()
        return ay

    return _make


@pytest.fixture()
def make_class(db_session: AsyncSession):
    async def _make(grade_id: int, school_year: int, name: Optional[str] = None) -> SchoolClass:
        obj = SchoolClass(name=name or f"{grade_id}A", grade_id=grade_id, school_year=school_year)
        db_session.add(obj)
        await db_session.commit()
        return obj

    return _make


@pytest.fixture()
def make_student(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(
        school_class: Optional[SchoolClass] = None,
        status: str = "active",
        name: Optional[str] = None,
    ) -> Student:
        counter["n"] += 1
        student = Student(
            student_code=f"T{11400 + counter['n']}",
            name=name or f"Student {counter['n']}",
            birthday=date(2015, 1, 1),
            gender="female",
            status=status,
            enrollment_date=date(2020, 9, 1),
        )
        db_session.add(student)
        await db_session.flush()
        if school_class is not None:
            db_session.add(
                StudentClassEnrollment(
                    student_id=student.id,
                    class_id=school_class.id,
                    school_year=school_class.school_year,
                )
            )
        await db_session.commit()
        return student

    return _make
