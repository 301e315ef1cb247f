from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.sql import func

from models.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    career_id = Column(Integer, ForeignKey("careers.id"), nullable=True, index=True)
    name = Column(Text, nullable=False)
    credits = Column(Integer, nullable=False, default=0)
    semester = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_subjects_credits"),
        CheckConstraint("semester > 0", name="ck_subjects_semester"),
        UniqueConstraint("career_id", "name", name="uq_subjects_career_name"),
    )
