from sqlalchemy import Column, Integer, String

from app.db.session import Base


class Grade(Base):
    """Static reference data: grades 1..12, seeded once and never mutated."""

    __tablename__ = "grades"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(50), nullable=False)
