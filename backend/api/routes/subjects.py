from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_admin
from core.database import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.career import Career
from models.subject import Subject
from schemas.subject import SubjectCreate, SubjectOut, SubjectUpdate
from services.dependencies import ensure_unreferenced


router = APIRouter()


def _name_taken() -> ConflictError:
    return ConflictError("SUBJECT_NAME_TAKEN", "The career already has a subject with that name")


def _get_subject(db: Session, subject_id: int) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError("SUBJECT_NOT_FOUND", f"Subject {subject_id} not found")
    return subject


def _ensure_career_exists(db: Session, career_id: int) -> None:
    if db.get(Career, career_id) is None:
        raise ValidationError("INVALID_REFERENCE", f"Unknown career id {career_id}")


def _ensure_unique_subject_name(db: Session, *, career_id: int, name: str, exclude_subject_id: int | None) -> None:
    q = select(Subject.id).where(Subject.career_id == career_id, Subject.name == name)
    if exclude_subject_id is not None:
        q = q.where(Subject.id != exclude_subject_id)
    if db.execute(q.limit(1)).first() is not None:
        raise _name_taken()


@router.get("/", response_model=list[SubjectOut])
def list_subjects(
    career_id: int | None = Query(default=None, gt=0),
    _user=Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    q = select(Subject).order_by(Subject.semester.asc(), Subject.name.asc())
    if career_id is not None:
        q = q.where(Subject.career_id == career_id)
    return db.execute(q).scalars().all()


@router.get("/{subject_id}", response_model=SubjectOut)
def get_subject(
    subject_id: int,
    _user=Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SubjectOut:
    return _get_subject(db, subject_id)


@router.post("/", response_model=SubjectOut, status_code=201)
def create_subject(
    payload: SubjectCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectOut:
    name = payload.name.strip()
    if not name:
        raise ValidationError("INVALID_NAME", "Subject name is required")
    _ensure_career_exists(db, payload.career_id)
    _ensure_unique_subject_name(db, career_id=payload.career_id, name=name, exclude_subject_id=None)

    subject = Subject(career_id=payload.career_id, name=name, credits=payload.credits, semester=payload.semester)
    db.add(subject)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _name_taken()
    db.refresh(subject)
    return subject


@router.put("/{subject_id}", response_model=SubjectOut)
@router.patch("/{subject_id}", response_model=SubjectOut)
def update_subject(
    subject_id: int,
    payload: SubjectUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectOut:
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("NO_FIELDS", "No fields to update")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if not updates["name"]:
            raise ValidationError("INVALID_NAME", "Subject name is required")

    subject = _get_subject(db, subject_id)
    if "career_id" in updates:
        _ensure_career_exists(db, updates["career_id"])
    if updates.keys() & {"name", "career_id"}:
        _ensure_unique_subject_name(
            db,
            career_id=updates.get("career_id", subject.career_id),
            name=updates.get("name", subject.name),
            exclude_subject_id=subject_id,
        )

    for k, v in updates.items():
        setattr(subject, k, v)
    subject.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _name_taken()
    db.refresh(subject)
    return subject


@router.delete("/{subject_id}", status_code=204)
def delete_subject(
    subject_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    ensure_unreferenced(db, "subject", subject_id)
    result = db.execute(delete(Subject).where(Subject.id == subject_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("SUBJECT_NOT_FOUND", f"Subject {subject_id} not found")
    db.commit()
    return Response(status_code=204)
