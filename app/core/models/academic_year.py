from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.db.session import Base


class AcademicYear(Base):
    """
    School year (e.g. year=2026, name="2026-2027"). ``year`` is what classes and
    enrollments reference through their integer ``school_year``.
    At most one row system-wide has is_active = true; "current year" is always
    a query on that flag, never process state.
    """

    __tablename__ = "academic_years"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, unique=True)
    name = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    seasons = relationship(
        "Season",
        back_populates="academic_year",
        order_by="Season.start_date",
    )
