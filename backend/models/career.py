from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Text
from sqlalchemy.sql import func

from models.base import Base


class Career(Base):
    __tablename__ = "careers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    semesters = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("semesters > 0", name="ck_careers_semesters"),
    )
