from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.career import Career
from schemas.career import CareerCreate, CareerOut, CareerUpdate
from services.dependencies import ensure_unreferenced


router = APIRouter()


def _name_taken() -> ConflictError:
    return ConflictError("CAREER_NAME_TAKEN", "A career with that name already exists")


def _ensure_unique_career_name(db: Session, *, name: str, exclude_career_id: int | None) -> None:
    q = select(Career.id).where(Career.name == name)
    if exclude_career_id is not None:
        q = q.where(Career.id != exclude_career_id)
    if db.execute(q.limit(1)).first() is not None:
        raise _name_taken()


def _get_career(db: Session, career_id: int) -> Career:
    career = db.get(Career, career_id)
    if career is None:
        raise NotFoundError("CAREER_NOT_FOUND", f"Career {career_id} not found")
    return career


@router.get("/", response_model=list[CareerOut])
def list_careers(db: Session = Depends(get_db)) -> list[CareerOut]:
    return db.execute(select(Career).order_by(Career.name.asc())).scalars().all()


@router.get("/{career_id}", response_model=CareerOut)
def get_career(career_id: int, db: Session = Depends(get_db)) -> CareerOut:
    return _get_career(db, career_id)


@router.post("/", response_model=CareerOut, status_code=201)
def create_career(payload: CareerCreate, db: Session = Depends(get_db)) -> CareerOut:
    name = payload.name.strip()
    if not name:
        raise ValidationError("INVALID_NAME", "Career name is required")
    _ensure_unique_career_name(db, name=name, exclude_career_id=None)

    career = Career(name=name, semesters=payload.semesters)
    db.add(career)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _name_taken()
    db.refresh(career)
    return career


@router.put("/{career_id}", response_model=CareerOut)
@router.patch("/{career_id}", response_model=CareerOut)
def update_career(career_id: int, payload: CareerUpdate, db: Session = Depends(get_db)) -> CareerOut:
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("NO_FIELDS", "No fields to update")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if not updates["name"]:
            raise ValidationError("INVALID_NAME", "Career name is required")

    career = _get_career(db, career_id)
    if "name" in updates:
        _ensure_unique_career_name(db, name=updates["name"], exclude_career_id=career_id)

    for k, v in updates.items():
        setattr(career, k, v)
    career.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _name_taken()
    db.refresh(career)
    return career


@router.delete("/{career_id}", status_code=204)
def delete_career(career_id: int, db: Session = Depends(get_db)) -> Response:
    ensure_unreferenced(db, "career", career_id)
    result = db.execute(delete(Career).where(Career.id == career_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("CAREER_NOT_FOUND", f"Career {career_id} not found")
    db.commit()
    return Response(status_code=204)
