"""
Academic-year rollover: provision the target year's classes, enroll every active
student of the previous year one grade up, graduate students past the top grade.

The run is decided by one stage, computed from the class rows of both years:

    NO_PRIOR_YEAR     previous year has no classes -> class skeleton only, nothing promoted
    PARTIAL_CLASSES   target year covers some grades -> one class per missing grade, then promote
    NORMAL_PROMOTION  target year empty (clone previous year's classes) or complete, then promote

Class provisioning and the promotion batch commit in the same transaction.
Enrollment inserts skip (student_id, school_year) duplicates instead of failing.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.app_logger import get_logger
from app.core.config import Settings, settings
from app.core.enums import StudentStatus
from app.core.exceptions import NotFoundError, ServiceError, UnprocessableError
from app.core.models import AcademicYear, Grade, SchoolClass, Student, StudentClassEnrollment

logger = get_logger("promotion")


class PromotionStage(str, Enum):
    NO_PRIOR_YEAR = "NO_PRIOR_YEAR"
    PARTIAL_CLASSES = "PARTIAL_CLASSES"
    NORMAL_PROMOTION = "NORMAL_PROMOTION"


@dataclass(frozen=True)
class ClassNamingPolicy:
    """Grade -> class name templates. Templates receive grade_id and grade_name."""

    bootstrap_template: str = "{grade_name}班"
    clone_fallback_template: str = "{grade_id}A"
    overrides: Mapping[int, str] = field(default_factory=dict)

    def _render(self, template: str, grade: Grade) -> str:
        template = self.overrides.get(grade.id, template)
        return template.format(grade_id=grade.id, grade_name=grade.name)

    def bootstrap_name(self, grade: Grade) -> str:
        return self._render(self.bootstrap_template, grade)

    def clone_fallback_name(self, grade: Grade) -> str:
        return self._render(self.clone_fallback_template, grade)


@dataclass(frozen=True)
class PromotionPolicy:
    max_grade: int = 12
    graduation_reason: str = "畢業"
    naming: ClassNamingPolicy = field(default_factory=ClassNamingPolicy)

    @classmethod
    def from_settings(cls, conf: Settings = settings) -> "PromotionPolicy":
        return cls(
            max_grade=conf.max_grade,
            graduation_reason=conf.graduation_reason,
            naming=ClassNamingPolicy(
                bootstrap_template=conf.bootstrap_class_name_template,
                clone_fallback_template=conf.clone_fallback_class_name_template,
                overrides=dict(conf.class_name_templates),
            ),
        )


@dataclass
class PromotionResult:
    promoted: int = 0
    graduated: int = 0
    stage: Optional[PromotionStage] = None
    classes_created: int = 0
    skipped: int = 0


@dataclass
class _PromotionPlan:
    enrollments: List[dict] = field(default_factory=list)
    graduate_ids: List[int] = field(default_factory=list)
    skipped: int = 0


def resolve_stage(
    previous_classes: Sequence[SchoolClass],
    target_classes: Sequence[SchoolClass],
    grade_ids: Iterable[int],
) -> PromotionStage:
    if not previous_classes:
        return PromotionStage.NO_PRIOR_YEAR
    covered = {c.grade_id for c in target_classes}
    if covered and not set(grade_ids) <= covered:
        return PromotionStage.PARTIAL_CLASSES
    return PromotionStage.NORMAL_PROMOTION


async def find_academic_year_id_by_year(db: AsyncSession, year: int) -> int:
    result = await db.execute(select(AcademicYear.id).where(AcademicYear.year == year))
    academic_year_id = result.scalars().first()
    if academic_year_id is None:
        raise NotFoundError(f"Academic year {year} not found")
    return academic_year_id


async def _list_grades(db: AsyncSession) -> List[Grade]:
    result = await db.execute(select(Grade).order_by(Grade.id))
    return list(result.scalars().all())


async def _classes_for_year(db: AsyncSession, school_year: int) -> List[SchoolClass]:
    result = await db.execute(
        select(SchoolClass)
        .where(SchoolClass.school_year == school_year)
        .order_by(SchoolClass.grade_id, SchoolClass.id)
    )
    return list(result.scalars().unique().all())


def _first_class_by_grade(classes: Iterable[SchoolClass]) -> Dict[int, SchoolClass]:
    by_grade: Dict[int, SchoolClass] = {}
    for c in classes:
        by_grade.setdefault(c.grade_id, c)
    return by_grade


async def _create_classes(db: AsyncSession, rows: List[SchoolClass]) -> List[SchoolClass]:
    if rows:
        db.add_all(rows)
        await db.flush()
    return rows


async def _provision_missing_grades(
    db: AsyncSession,
    grades: Sequence[Grade],
    target_year: int,
    existing: Sequence[SchoolClass],
    naming: ClassNamingPolicy,
) -> List[SchoolClass]:
    """One class per grade that has none in target_year. Insert-if-absent, so safe to repeat."""
    covered = {c.grade_id for c in existing}
    rows = [
        SchoolClass(name=naming.bootstrap_name(g), grade_id=g.id, school_year=target_year)
        for g in grades
        if g.id not in covered
    ]
    return await _create_classes(db, rows)


async def _clone_previous_year(
    db: AsyncSession,
    grades: Sequence[Grade],
    target_year: int,
    previous_classes: Sequence[SchoolClass],
    naming: ClassNamingPolicy,
) -> List[SchoolClass]:
    """Copy last year's class set (same names) into target_year; fallback name for grades it lacked."""
    previous_by_grade: Dict[int, List[SchoolClass]] = defaultdict(list)
    for c in previous_classes:
        previous_by_grade[c.grade_id].append(c)

    rows: List[SchoolClass] = []
    for g in grades:
        template_classes = previous_by_grade.get(g.id)
        if template_classes:
            rows.extend(
                SchoolClass(name=c.name, grade_id=g.id, school_year=target_year) for c in template_classes
            )
        else:
            rows.append(SchoolClass(name=naming.clone_fallback_name(g), grade_id=g.id, school_year=target_year))
    return await _create_classes(db, rows)


async def _ensure_target_classes(
    db: AsyncSession,
    stage: PromotionStage,
    grades: Sequence[Grade],
    previous_classes: Sequence[SchoolClass],
    target_classes: Sequence[SchoolClass],
    target_year: int,
    naming: ClassNamingPolicy,
) -> Tuple[Dict[int, SchoolClass], int]:
    if stage is PromotionStage.PARTIAL_CLASSES:
        created = await _provision_missing_grades(db, grades, target_year, target_classes, naming)
    elif not target_classes:
        created = await _clone_previous_year(db, grades, target_year, previous_classes, naming)
    else:
        created = []
    # Existing classes come first so an admin-created class stays the promotion target.
    return _first_class_by_grade([*target_classes, *created]), len(created)


async def _active_enrollments(db: AsyncSession, school_year: int) -> List[Tuple[int, int]]:
    """(student_id, grade_id) for every active student enrolled in school_year."""
    result = await db.execute(
        select(StudentClassEnrollment.student_id, SchoolClass.grade_id)
        .join(SchoolClass, StudentClassEnrollment.class_id == SchoolClass.id)
        .join(Student, StudentClassEnrollment.student_id == Student.id)
        .where(
            StudentClassEnrollment.school_year == school_year,
            Student.status == StudentStatus.active.value,
        )
        .order_by(StudentClassEnrollment.id)
    )
    return [(row.student_id, row.grade_id) for row in result.all()]


async def _students_enrolled_in(db: AsyncSession, school_year: int) -> Set[int]:
    result = await db.execute(
        select(StudentClassEnrollment.student_id).where(StudentClassEnrollment.school_year == school_year)
    )
    return set(result.scalars().all())


async def _class_for_grade(
    db: AsyncSession,
    grade_id: int,
    class_by_grade: Dict[int, SchoolClass],
    grades_by_id: Mapping[int, Grade],
    target_year: int,
    naming: ClassNamingPolicy,
) -> SchoolClass:
    school_class = class_by_grade.get(grade_id)
    if school_class is not None:
        return school_class
    grade = grades_by_id.get(grade_id)
    if grade is None:
        raise UnprocessableError(
            f"Cannot provision a class for grade {grade_id} in {target_year}: grade does not exist"
        )
    logger.warning("No %s class for grade %s; creating one just in time", target_year, grade_id)
    (school_class,) = await _create_classes(
        db, [SchoolClass(name=naming.bootstrap_name(grade), grade_id=grade_id, school_year=target_year)]
    )
    class_by_grade[grade_id] = school_class
    return school_class


async def _plan_promotion(
    db: AsyncSession,
    candidates: Sequence[Tuple[int, int]],
    class_by_grade: Dict[int, SchoolClass],
    grades_by_id: Mapping[int, Grade],
    target_year: int,
    policy: PromotionPolicy,
) -> _PromotionPlan:
    plan = _PromotionPlan()
    # Best-effort pre-check; the insert below still tolerates duplicates.
    handled = await _students_enrolled_in(db, target_year)
    for student_id, grade_id in candidates:
        if student_id in handled:
            plan.skipped += 1
            continue
        handled.add(student_id)

        next_grade_id = grade_id + 1
        if next_grade_id > policy.max_grade:
            plan.graduate_ids.append(student_id)
            continue

        school_class = await _class_for_grade(
            db, next_grade_id, class_by_grade, grades_by_id, target_year, policy.naming
        )
        plan.enrollments.append(
            {"student_id": student_id, "class_id": school_class.id, "school_year": target_year}
        )
    return plan


async def _insert_enrollments_skip_duplicates(db: AsyncSession, rows: List[dict]) -> int:
    """Insert the staged enrollments, ignoring (student_id, school_year) duplicates. Returns rows written."""
    if not rows:
        return 0
    table = StudentClassEnrollment.__table__
    key = ["student_id", "school_year"]
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(table).on_conflict_do_nothing(index_elements=key)
    elif dialect == "sqlite":
        stmt = sqlite_insert(table).on_conflict_do_nothing(index_elements=key)
    elif dialect in ("mysql", "mariadb"):
        result = await db.execute(mysql_insert(table).prefix_with("IGNORE"), rows)
        return result.rowcount
    else:
        written = 0
        for row in rows:
            try:
                async with db.begin_nested():
                    db.add(StudentClassEnrollment(**row))
                written += 1
            except IntegrityError:
                logger.info("Student %s already enrolled in %s; skipped", row["student_id"], row["school_year"])
        return written
    # Skipped conflicts return no row.
    result = await db.execute(stmt.returning(table.c.id), rows)
    return len(result.all())


async def _graduate(db: AsyncSession, student_ids: List[int], policy: PromotionPolicy) -> int:
    if not student_ids:
        return 0
    # Only rows still active: a concurrent run cannot graduate a student twice.
    result = await db.execute(
        update(Student)
        .where(Student.id.in_(student_ids), Student.status == StudentStatus.active.value)
        .values(
            status=StudentStatus.graduated.value,
            departure_date=date.today(),
            departure_reason=policy.graduation_reason,
        )
    )
    return result.rowcount


async def ensure_class_skeleton(db: AsyncSession, target_year: int, naming: ClassNamingPolicy) -> int:
    """Give every grade at least one class in target_year and commit. Returns classes created."""
    grades = await _list_grades(db)
    existing = await _classes_for_year(db, target_year)
    created = await _provision_missing_grades(db, grades, target_year, existing, naming)
    await db.commit()
    return len(created)


async def _run_promotion(
    db: AsyncSession,
    target_year: int,
    policy: PromotionPolicy,
) -> PromotionResult:
    previous_year = target_year - 1
    grades = await _list_grades(db)
    previous_classes = await _classes_for_year(db, previous_year)
    target_classes = await _classes_for_year(db, target_year)
    stage = resolve_stage(previous_classes, target_classes, [g.id for g in grades])
    logger.info(
        "Promotion into %s: stage=%s, %d classes in %s, %d classes in %s, %d grades",
        target_year, stage.value, len(previous_classes), previous_year,
        len(target_classes), target_year, len(grades),
    )

    if stage is PromotionStage.NO_PRIOR_YEAR:
        created = await _provision_missing_grades(db, grades, target_year, target_classes, policy.naming)
        logger.info("No classes in %s; created %d skeleton classes for %s", previous_year, len(created), target_year)
        return PromotionResult(stage=stage, classes_created=len(created))

    candidates = await _active_enrollments(db, previous_year)
    logger.info("Found %d active enrollments in %s", len(candidates), previous_year)

    class_by_grade, created_count = await _ensure_target_classes(
        db, stage, grades, previous_classes, target_classes, target_year, policy.naming
    )
    if created_count:
        logger.info("Created %d classes for %s", created_count, target_year)

    plan = await _plan_promotion(
        db, candidates, class_by_grade, {g.id: g for g in grades}, target_year, policy
    )
    promoted = await _insert_enrollments_skip_duplicates(db, plan.enrollments)
    graduated = await _graduate(db, plan.graduate_ids, policy)
    # Rows a concurrent run already wrote count as skipped.
    skipped = plan.skipped + (len(plan.enrollments) - promoted) + (len(plan.graduate_ids) - graduated)
    logger.info(
        "Staged %d promotions and %d graduations for %s; wrote %d and %d (%d skipped)",
        len(plan.enrollments), len(plan.graduate_ids), target_year, promoted, graduated, skipped,
    )
    return PromotionResult(
        promoted=promoted,
        graduated=graduated,
        stage=stage,
        classes_created=created_count,
        skipped=skipped,
    )


async def promote_students(
    db: AsyncSession,
    academic_year_id: int,
    policy: Optional[PromotionPolicy] = None,
) -> PromotionResult:
    """
    Promote every active student of (year - 1) into the given academic year.
    Re-running for the same year promotes nobody twice and graduates nobody twice.
    On failure the whole batch is rolled back, the target year's class skeleton
    is provisioned in a fresh transaction, and the error is re-raised.
    """
    policy = policy or PromotionPolicy.from_settings()
    academic_year = await db.get(AcademicYear, academic_year_id)
    if not academic_year:
        raise NotFoundError(f"Academic year with ID {academic_year_id} not found")
    target_year = academic_year.year

    try:
        result = await _run_promotion(db, target_year, policy)
        await db.commit()
    except (SQLAlchemyError, ServiceError) as exc:
        await db.rollback()
        logger.exception("Promotion into %s failed; batch rolled back", target_year)
        await _recover_class_skeleton(db, target_year, policy.naming)
        if isinstance(exc, ServiceError):
            raise
        raise ServiceError(
            f"Student promotion into {target_year} failed",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ) from exc
    return result


async def _recover_class_skeleton(db: AsyncSession, target_year: int, naming: ClassNamingPolicy) -> None:
    try:
        created = await ensure_class_skeleton(db, target_year, naming)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not provision class skeleton for %s", target_year)
        return
    if created:
        logger.info("Provisioned %d skeleton classes for %s after failed promotion", created, target_year)
