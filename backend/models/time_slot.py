from __future__ import annotations

from sqlalchemy import Column, DateTime, Enum, Integer, Time
from sqlalchemy.sql import func

from models.base import Base


SHIFTS = ("MORNING", "AFTERNOON")

SHIFT = Enum(*SHIFTS, name="shift", native_enum=False, create_constraint=True)


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shift = Column(SHIFT, nullable=False)
    time = Column(Time, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
