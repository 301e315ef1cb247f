from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_admin
from core.database import get_db
from core.errors import NotFoundError
from models.student import Student
from models.user import User
from schemas.student import StudentCreate, StudentDetailOut, StudentOut, StudentUpdate
from services import students as student_service


router = APIRouter()


def _is_admin(user: User) -> bool:
    return (user.role or "").upper() == "ADMIN"


def _ensure_admin_or_owner(db: Session, student_id: int, user: User) -> None:
    if _is_admin(user):
        return
    owned = db.execute(select(Student.id).where(Student.id == student_id, Student.user_id == user.id)).first()
    if owned is None:
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")


@router.get("/", response_model=list[StudentOut])
def list_students(
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[StudentOut]:
    return student_service.list_students(db)


@router.get("/me", response_model=StudentDetailOut)
def my_student_record(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> StudentDetailOut:
    student_id = student_service.student_id_for_user(db, current_user.id)
    if student_id is None:
        raise NotFoundError("STUDENT_NOT_FOUND", "No student record for this user")
    return student_service.get_student(db, student_id)


@router.get("/{student_id}", response_model=StudentDetailOut)
def get_student(
    student_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> StudentDetailOut:
    _ensure_admin_or_owner(db, student_id, current_user)
    return student_service.get_student(db, student_id)


@router.post("/", response_model=StudentDetailOut, status_code=201)
def create_student(
    payload: StudentCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> StudentDetailOut:
    return student_service.create_student(db, payload)


@router.put("/{student_id}", response_model=StudentDetailOut)
@router.patch("/{student_id}", response_model=StudentDetailOut)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> StudentDetailOut:
    _ensure_admin_or_owner(db, student_id, current_user)
    # Students may only change their own registrations.
    if not _is_admin(current_user) and payload.model_fields_set - {"subject_ids"}:
        raise HTTPException(status_code=403, detail="PERSONAL_DATA_ADMIN_ONLY")
    return student_service.update_student(db, student_id, payload)


@router.delete("/{student_id}", status_code=204)
def delete_student(
    student_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    student_service.delete_student(db, student_id)
    return Response(status_code=204)
