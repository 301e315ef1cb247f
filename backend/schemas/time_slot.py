from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel


Shift = Literal["MORNING", "AFTERNOON"]


class TimeSlotCreate(BaseModel):
    time: dt.time
    shift: Shift | None = None


class TimeSlotUpdate(BaseModel):
    time: dt.time | None = None
    shift: Shift | None = None


class TimeSlotOut(BaseModel):
    id: int
    time: dt.time
    shift: Shift
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True
