from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ClassroomBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    building: str = Field(min_length=1, max_length=100)


class ClassroomCreate(ClassroomBase):
    pass


class ClassroomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    building: str | None = Field(default=None, min_length=1, max_length=100)


class ClassroomOut(ClassroomBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
