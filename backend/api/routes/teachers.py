from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_admin
from core.database import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.teacher import Teacher
from models.user import User
from schemas.teacher import TeacherCreate, TeacherOut, TeacherUpdate
from services.dependencies import ensure_unreferenced


router = APIRouter()


def _already_linked() -> ConflictError:
    return ConflictError("USER_ALREADY_LINKED", "The user is already linked to a teacher")


def _get_teacher(db: Session, teacher_id: int) -> Teacher:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise NotFoundError("TEACHER_NOT_FOUND", f"Teacher {teacher_id} not found")
    return teacher


def _ensure_admin_or_owner(teacher: Teacher, user: User) -> None:
    if (user.role or "").upper() != "ADMIN" and teacher.user_id != user.id:
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")


@router.get("/", response_model=list[TeacherOut])
def list_teachers(
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[TeacherOut]:
    return db.execute(select(Teacher).order_by(Teacher.id.desc())).scalars().all()


@router.get("/me", response_model=TeacherOut)
def my_teacher_record(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherOut:
    teacher = db.execute(select(Teacher).where(Teacher.user_id == current_user.id)).scalars().first()
    if teacher is None:
        raise NotFoundError("TEACHER_NOT_FOUND", "No teacher record for this user")
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(
    teacher_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherOut:
    teacher = _get_teacher(db, teacher_id)
    _ensure_admin_or_owner(teacher, current_user)
    return teacher


@router.post("/", response_model=TeacherOut, status_code=201)
def create_teacher(
    payload: TeacherCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TeacherOut:
    name = payload.name.strip()
    if not name:
        raise ValidationError("INVALID_NAME", "Teacher name is required")

    user = db.get(User, payload.user_id)
    if user is None or (user.role or "").upper() != "TEACHER":
        raise ValidationError("INVALID_USER", "The user must exist and have the TEACHER role")
    if db.execute(select(Teacher.id).where(Teacher.user_id == payload.user_id)).first() is not None:
        raise _already_linked()

    teacher = Teacher(user_id=payload.user_id, name=name, degree=payload.degree)
    db.add(teacher)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _already_linked()
    db.refresh(teacher)
    return teacher


@router.put("/{teacher_id}", response_model=TeacherOut)
@router.patch("/{teacher_id}", response_model=TeacherOut)
def update_teacher(
    teacher_id: int,
    payload: TeacherUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherOut:
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("NO_FIELDS", "No fields to update")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if not updates["name"]:
            raise ValidationError("INVALID_NAME", "Teacher name is required")

    teacher = _get_teacher(db, teacher_id)
    _ensure_admin_or_owner(teacher, current_user)

    for k, v in updates.items():
        setattr(teacher, k, v)
    teacher.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.delete("/{teacher_id}", status_code=204)
def delete_teacher(
    teacher_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    ensure_unreferenced(db, "teacher", teacher_id)
    result = db.execute(delete(Teacher).where(Teacher.id == teacher_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("TEACHER_NOT_FOUND", f"Teacher {teacher_id} not found")
    db.commit()
    return Response(status_code=204)
