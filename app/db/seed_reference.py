"""
Seed script for reference data.

This script:
1. Creates missing tables
2. Inserts or renames grades 1..12 ("1A".."12A")
3. Inserts the default leave types
4. Creates the first GA specialist from ADMIN_USERNAME / ADMIN_PASSWORD when both are set
"""
import asyncio
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.services import create_user
from app.core.config import settings
from app.core.enums import UserRole
from app.core.models import Grade, LeaveType
from app.db.session import AsyncSessionLocal, Base, engine

LEAVE_TYPES: List[Tuple[str, str]] = [
    ("事假", "Personal leave"),
    ("病假", "Sick leave"),
    ("公假", "Official leave"),
    ("喪假", "Bereavement leave"),
]


def grade_rows(max_grade: int = settings.max_grade) -> List[Tuple[int, str]]:
    return [(n, f"{n}A") for n in range(1, max_grade + 1)]


async def seed_grades(db: AsyncSession) -> Tuple[int, int]:
    created = updated = 0
    for grade_id, name in grade_rows():
        grade = await db.get(Grade, grade_id)
        if grade:
            if grade.name != name:
                grade.name = name
                updated += 1
        else:
            db.add(Grade(id=grade_id, name=name))
            created += 1
    await db.commit()
    return created, updated


async def seed_leave_types(db: AsyncSession) -> int:
    created = 0
    for name, description in LEAVE_TYPES:
        result = await db.execute(select(LeaveType.id).where(LeaveType.name == name))
        if result.scalar_one_or_none() is None:
            db.add(LeaveType(name=name, description=description))
            created += 1
    await db.commit()
    return created


async def seed_admin(db: AsyncSession) -> bool:
    if not (settings.admin_username and settings.admin_password):
        return False
    result = await db.execute(select(User.id).where(User.username == settings.admin_username))
    if result.scalar_one_or_none() is not None:
        return False
    await create_user(
        db,
        username=settings.admin_username,
        name="GA Specialist",
        role=UserRole.GA_SPECIALIST,
        password=settings.admin_password,
    )
    return True


async def seed_reference(db: AsyncSession) -> None:
    grades_created, grades_updated = await seed_grades(db)
    leave_types_created = await seed_leave_types(db)
    admin_created = await seed_admin(db)

    print("=" * 60)
    print("Reference Data Seeding Summary")
    print("=" * 60)
    print(f"Grades created: {grades_created}")
    print(f"Grades renamed: {grades_updated}")
    print(f"Leave types created: {leave_types_created}")
    print(f"Admin user created: {'yes' if admin_created else 'no'}")
    print("=" * 60)


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as db:
        try:
            await seed_reference(db)
        except Exception as e:
            print(f"Error seeding reference data: {e}")
            await db.rollback()
            raise
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
