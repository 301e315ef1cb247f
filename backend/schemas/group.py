from __future__ import annotations

from datetime import datetime, time

from pydantic import BaseModel, Field


class GroupBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    career_id: int = Field(gt=0)
    subject_id: int = Field(gt=0)
    teacher_id: int = Field(gt=0)
    classroom_id: int = Field(gt=0)
    time_slot_id: int = Field(gt=0)
    semester: int = Field(gt=0)
    max_students: int = Field(gt=0)


class GroupCreate(GroupBase):
    pass


class GroupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    career_id: int | None = Field(default=None, gt=0)
    subject_id: int | None = Field(default=None, gt=0)
    teacher_id: int | None = Field(default=None, gt=0)
    classroom_id: int | None = Field(default=None, gt=0)
    time_slot_id: int | None = Field(default=None, gt=0)
    semester: int | None = Field(default=None, gt=0)
    max_students: int | None = Field(default=None, gt=0)


class GroupOut(GroupBase):
    id: int
    career_name: str | None = None
    subject_name: str | None = None
    teacher_name: str | None = None
    classroom_name: str | None = None
    time_slot_time: time | None = None
    time_slot_shift: str | None = None
    enrolled_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RosterEntryOut(BaseModel):
    student_id: int
    name: str
    status: str
    email: str | None = None
    enrolled_at: datetime

    class Config:
        from_attributes = True


class GroupDetailOut(GroupOut):
    students: list[RosterEntryOut] = Field(default_factory=list)
