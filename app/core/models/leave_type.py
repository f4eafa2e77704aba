"""Configurable leave types (事假, 病假, 公假, 喪假, ...)."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.db.session import Base


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
