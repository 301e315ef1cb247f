from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


Degree = Literal["LICENCIATURA", "MAESTRIA", "DOCTORADO"]


class TeacherCreate(BaseModel):
    user_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=200)
    degree: Degree


class TeacherUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    degree: Degree | None = None


class TeacherOut(BaseModel):
    id: int
    user_id: int
    name: str
    degree: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
