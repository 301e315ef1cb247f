from __future__ import annotations

import datetime as dt


def infer_shift(value: dt.time) -> str:
    return "MORNING" if value.hour < 12 else "AFTERNOON"


def resolve_shift(value: dt.time, shift: str | None) -> str:
    """Explicit shift wins; otherwise derive it from the clock hour."""

    return shift or infer_shift(value)
