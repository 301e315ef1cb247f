from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


StudentStatus = Literal["ACTIVE", "INACTIVE"]


class StudentCreate(BaseModel):
    user_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=200)
    status: StudentStatus = "ACTIVE"
    date_of_birth: date | None = None
    career_id: int | None = Field(default=None, gt=0)
    subject_ids: list[int] | None = None


class StudentUpdate(BaseModel):
    """Fields present are applied.

    `career_id` and `date_of_birth` may be sent as null to clear them.
    `subject_ids` replaces the student's whole registration set.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    status: StudentStatus | None = None
    date_of_birth: date | None = None
    career_id: int | None = Field(default=None, gt=0)
    subject_ids: list[int] | None = None


class RegistrationOut(BaseModel):
    subject_id: int
    name: str
    semester: int
    credits: int
    career_id: int | None = None
    registered_at: datetime


class StudentOut(BaseModel):
    id: int
    user_id: int
    name: str
    status: str
    date_of_birth: date | None = None
    career_id: int | None = None
    career_name: str | None = None
    username: str
    email: str
    created_at: datetime
    updated_at: datetime


class StudentDetailOut(StudentOut):
    subjects: list[RegistrationOut] = Field(default_factory=list)
