from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.sql import func

from models.base import Base


class Enrollment(Base):
    """A student's seat in a group.

    `id` increases with insertion order and is the tie-break for eviction when
    two rows share the same `enrolled_at`.
    """

    __tablename__ = "group_students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    enrolled_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("group_id", "student_id", name="uq_group_students_group_student"),
    )
