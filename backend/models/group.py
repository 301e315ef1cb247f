from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.sql import func

from models.base import Base


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    career_id = Column(Integer, ForeignKey("careers.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), nullable=False, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False, index=True)
    semester = Column(Integer, nullable=False)
    max_students = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("semester > 0", name="ck_groups_semester"),
        CheckConstraint("max_students > 0", name="ck_groups_max_students"),
        # Authoritative guards against double-booking; the pre-write checks only
        # exist to produce a friendlier message.
        UniqueConstraint("subject_id", "name", name="uq_groups_subject_name"),
        UniqueConstraint("teacher_id", "time_slot_id", name="uq_groups_teacher_slot"),
        UniqueConstraint("classroom_id", "time_slot_id", name="uq_groups_classroom_slot"),
    )
