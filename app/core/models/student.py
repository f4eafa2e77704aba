from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.core.enums import StudentStatus
from app.db.session import Base


class Student(Base):
    """
    Student roster entry. student_code is the school's external code (e.g. T11403).
    Status only moves away from ACTIVE (graduated, transferred_out, suspended).
    """

    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_code = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    birthday = Column(Date, nullable=False)
    gender = Column(String(10), nullable=False)  # male | female | other
    status = Column(String(20), nullable=False, default=StudentStatus.active.value, index=True)
    enrollment_date = Column(Date, nullable=False)
    departure_date = Column(Date, nullable=True)
    departure_reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    enrollments = relationship(
        "StudentClassEnrollment",
        back_populates="student",
        order_by="StudentClassEnrollment.id.desc()",
    )
