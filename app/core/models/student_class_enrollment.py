from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.session import Base


class StudentClassEnrollment(Base):
    """
    Student placement in a class for one school year. One record per (student, school_year):
    promotion creates a NEW record for the next year and never touches the old one.
    """

    __tablename__ = "student_class_enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "school_year", name="uq_enrollment_student_school_year"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    school_year = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="enrollments")
    school_class = relationship("SchoolClass", back_populates="enrollments", lazy="joined")
