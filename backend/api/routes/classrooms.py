from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.classroom import Classroom
from schemas.classroom import ClassroomCreate, ClassroomOut, ClassroomUpdate
from services.dependencies import ensure_unreferenced


router = APIRouter()


def _ensure_unique_classroom_name(db: Session, *, name: str, exclude_classroom_id: int | None) -> None:
    q = select(Classroom.id).where(Classroom.name == name)
    if exclude_classroom_id is not None:
        q = q.where(Classroom.id != exclude_classroom_id)
    if db.execute(q.limit(1)).first() is not None:
        raise ConflictError("CLASSROOM_NAME_TAKEN", "A classroom with that name already exists")


def _get_classroom(db: Session, classroom_id: int) -> Classroom:
    classroom = db.get(Classroom, classroom_id)
    if classroom is None:
        raise NotFoundError("CLASSROOM_NOT_FOUND", f"Classroom {classroom_id} not found")
    return classroom


@router.get("/", response_model=list[ClassroomOut])
def list_classrooms(db: Session = Depends(get_db)) -> list[ClassroomOut]:
    return db.execute(select(Classroom).order_by(Classroom.id.desc())).scalars().all()


@router.get("/{classroom_id}", response_model=ClassroomOut)
def get_classroom(classroom_id: int, db: Session = Depends(get_db)) -> ClassroomOut:
    return _get_classroom(db, classroom_id)


@router.post("/", response_model=ClassroomOut, status_code=201)
def create_classroom(
    payload: ClassroomCreate,
    db: Session = Depends(get_db),
) -> ClassroomOut:
    name = payload.name.strip()
    building = payload.building.strip()
    if not name:
        raise ValidationError("INVALID_NAME", "Classroom name is required")
    if not building:
        raise ValidationError("INVALID_BUILDING", "Building is required")

    _ensure_unique_classroom_name(db, name=name, exclude_classroom_id=None)

    classroom = Classroom(name=name, building=building)
    db.add(classroom)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("CLASSROOM_NAME_TAKEN", "A classroom with that name already exists")
    db.refresh(classroom)
    return classroom


@router.patch("/{classroom_id}", response_model=ClassroomOut)
def update_classroom(
    classroom_id: int,
    payload: ClassroomUpdate,
    db: Session = Depends(get_db),
) -> ClassroomOut:
    updates = {k: v.strip() for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("NO_FIELDS", "No fields to update")
    if "name" in updates and not updates["name"]:
        raise ValidationError("INVALID_NAME", "Classroom name is required")
    if "building" in updates and not updates["building"]:
        raise ValidationError("INVALID_BUILDING", "Building is required")

    classroom = _get_classroom(db, classroom_id)
    if "name" in updates:
        _ensure_unique_classroom_name(db, name=updates["name"], exclude_classroom_id=classroom_id)

    for k, v in updates.items():
        setattr(classroom, k, v)
    classroom.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("CLASSROOM_NAME_TAKEN", "A classroom with that name already exists")
    db.refresh(classroom)
    return classroom


@router.delete("/{classroom_id}", status_code=204)
def delete_classroom(
    classroom_id: int,
    db: Session = Depends(get_db),
) -> Response:
    ensure_unreferenced(db, "classroom", classroom_id)
    result = db.execute(delete(Classroom).where(Classroom.id == classroom_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("CLASSROOM_NOT_FOUND", f"Classroom {classroom_id} not found")
    db.commit()
    return Response(status_code=204)
