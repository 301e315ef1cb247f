from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CareerBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    semesters: int = Field(gt=0)


class CareerCreate(CareerBase):
    pass


class CareerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    semesters: int | None = Field(default=None, gt=0)


class CareerOut(CareerBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
