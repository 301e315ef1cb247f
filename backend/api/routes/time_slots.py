from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.database import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.time_slot import TimeSlot
from schemas.time_slot import TimeSlotCreate, TimeSlotOut, TimeSlotUpdate
from services.dependencies import ensure_unreferenced
from services.time_slots import infer_shift, resolve_shift


logger = logging.getLogger(__name__)


router = APIRouter()


def _ensure_unique_time(db: Session, *, value, exclude_slot_id: int | None) -> None:
    q = select(TimeSlot.id).where(TimeSlot.time == value)
    if exclude_slot_id is not None:
        q = q.where(TimeSlot.id != exclude_slot_id)
    if db.execute(q.limit(1)).first() is not None:
        raise ConflictError("TIME_SLOT_TAKEN", "The time is already registered")


def _get_slot(db: Session, slot_id: int) -> TimeSlot:
    slot = db.get(TimeSlot, slot_id)
    if slot is None:
        raise NotFoundError("TIME_SLOT_NOT_FOUND", f"Time slot {slot_id} not found")
    return slot


@router.get("/", response_model=list[TimeSlotOut])
def list_time_slots(db: Session = Depends(get_db)) -> list[TimeSlotOut]:
    return db.execute(select(TimeSlot).order_by(TimeSlot.time.asc())).scalars().all()


@router.get("/{slot_id}", response_model=TimeSlotOut)
def get_time_slot(slot_id: int, db: Session = Depends(get_db)) -> TimeSlotOut:
    return _get_slot(db, slot_id)


@router.post("/", response_model=TimeSlotOut, status_code=201)
def create_time_slot(
    payload: TimeSlotCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TimeSlotOut:
    _ensure_unique_time(db, value=payload.time, exclude_slot_id=None)

    slot = TimeSlot(time=payload.time, shift=resolve_shift(payload.time, payload.shift))
    db.add(slot)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("TIME_SLOT_TAKEN", "The time is already registered")
    db.refresh(slot)
    logger.info("Created time slot id=%s time=%s shift=%s", slot.id, slot.time, slot.shift)
    return slot


@router.patch("/{slot_id}", response_model=TimeSlotOut)
def update_time_slot(
    slot_id: int,
    payload: TimeSlotUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TimeSlotOut:
    if payload.time is None and payload.shift is None:
        raise ValidationError("NO_FIELDS", "No fields to update")

    slot = _get_slot(db, slot_id)
    if payload.time is not None:
        _ensure_unique_time(db, value=payload.time, exclude_slot_id=slot_id)
        slot.time = payload.time

    if payload.shift is not None:
        slot.shift = payload.shift
    elif payload.time is not None:
        slot.shift = infer_shift(payload.time)
    slot.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("TIME_SLOT_TAKEN", "The time is already registered")
    db.refresh(slot)
    return slot


@router.delete("/{slot_id}", status_code=204)
def delete_time_slot(
    slot_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    ensure_unreferenced(db, "time_slot", slot_id)
    result = db.execute(delete(TimeSlot).where(TimeSlot.id == slot_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("TIME_SLOT_NOT_FOUND", f"Time slot {slot_id} not found")
    db.commit()
    return Response(status_code=204)
