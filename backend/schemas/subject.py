from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SubjectBase(BaseModel):
    career_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=200)
    credits: int = Field(ge=0)
    semester: int = Field(gt=0)


class SubjectCreate(SubjectBase):
    pass


class SubjectUpdate(BaseModel):
    career_id: int | None = Field(default=None, gt=0)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    credits: int | None = Field(default=None, ge=0)
    semester: int | None = Field(default=None, gt=0)


class SubjectOut(BaseModel):
    id: int
    career_id: int | None = None
    name: str
    credits: int
    semester: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
