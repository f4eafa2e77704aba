"""Year-scoped classes (e.g. 5A for school year 2026). Model named SchoolClass to avoid Python 'class' keyword."""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.session import Base


class SchoolClass(Base):
    """
    A class belongs to exactly one grade and one school year.
    (grade_id, school_year) is intentionally not unique: a grade may have
    zero, one or many classes in a year.
    """

    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    grade_id = Column(Integer, ForeignKey("grades.id"), nullable=False, index=True)
    school_year = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    grade = relationship("Grade", lazy="joined")
    enrollments = relationship("StudentClassEnrollment", back_populates="school_class")
    teacher_assignments = relationship("TeacherClassAssignment", back_populates="school_class")
