from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import ConflictError, NotFoundError, SchedulingError, StorageError, ValidationError
from models.career import Career
from models.enrollment import Enrollment
from models.student import Student
from models.subject import Subject
from models.subject_registration import SubjectRegistration
from models.user import User
from schemas.student import RegistrationOut, StudentCreate, StudentDetailOut, StudentOut, StudentUpdate


logger = logging.getLogger(__name__)


# May be sent as null to clear the stored value.
_NULLABLE_FIELDS = {"career_id", "date_of_birth"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _not_found(student_id: int) -> NotFoundError:
    return NotFoundError("STUDENT_NOT_FOUND", f"Student {student_id} not found")


def _ensure_career_exists(db: Session, career_id: int) -> None:
    if db.execute(select(Career.id).where(Career.id == career_id).limit(1)).first() is None:
        raise ValidationError("INVALID_REFERENCE", f"Unknown career id {career_id}")


def _student_select():
    return (
        select(
            *Student.__table__.columns,
            User.username,
            User.email,
            Career.name.label("career_name"),
        )
        .join(User, User.id == Student.user_id)
        .outerjoin(Career, Career.id == Student.career_id)
    )


def list_students(db: Session) -> list[StudentOut]:
    rows = db.execute(_student_select().order_by(Student.id.desc())).all()
    return [StudentOut.model_validate(dict(r._mapping)) for r in rows]


def get_student(db: Session, student_id: int) -> StudentDetailOut:
    row = db.execute(_student_select().where(Student.id == student_id)).first()
    if row is None:
        raise _not_found(student_id)

    registrations = db.execute(
        select(
            SubjectRegistration.subject_id,
            Subject.name,
            Subject.semester,
            Subject.credits,
            Subject.career_id,
            SubjectRegistration.registered_at,
        )
        .join(Subject, Subject.id == SubjectRegistration.subject_id)
        .where(SubjectRegistration.student_id == student_id)
        .order_by(SubjectRegistration.registered_at.asc(), SubjectRegistration.id.asc())
    ).all()

    return StudentDetailOut(
        **dict(row._mapping),
        subjects=[RegistrationOut.model_validate(dict(r._mapping)) for r in registrations],
    )


def student_id_for_user(db: Session, user_id: int) -> int | None:
    found = db.execute(select(Student.id).where(Student.user_id == user_id)).scalar_one_or_none()
    return int(found) if found is not None else None


def replace_registrations(
    db: Session,
    *,
    student_id: int,
    subject_ids: Iterable[int],
    registered_at: datetime | None = None,
) -> tuple[int, int]:
    """Make the student's registrations exactly `subject_ids`.

    Registrations that stay keep their original `registered_at`, so the
    student keeps their allocation priority for those subjects. Runs inside
    the caller's unit of work; returns (added, removed).
    """

    target = list(dict.fromkeys(subject_ids))
    if target:
        known = set(db.execute(select(Subject.id).where(Subject.id.in_(target))).scalars())
        missing = [s for s in target if s not in known]
        if missing:
            raise ValidationError("INVALID_REFERENCE", f"Unknown subject id(s) {missing}")

    current = set(
        db.execute(select(SubjectRegistration.subject_id).where(SubjectRegistration.student_id == student_id)).scalars()
    )
    to_remove = sorted(current.difference(target))
    to_add = [s for s in target if s not in current]

    if to_remove:
        db.execute(
            delete(SubjectRegistration).where(
                SubjectRegistration.student_id == student_id,
                SubjectRegistration.subject_id.in_(to_remove),
            )
        )
    if to_add:
        stamp = registered_at or _utcnow()
        db.add_all(
            SubjectRegistration(student_id=student_id, subject_id=subject_id, registered_at=stamp)
            for subject_id in to_add
        )
        db.flush()
    return len(to_add), len(to_remove)


def create_student(db: Session, payload: StudentCreate) -> StudentDetailOut:
    name = payload.name.strip()
    if not name:
        raise ValidationError("INVALID_NAME", "Student name is required")

    user = db.get(User, payload.user_id)
    if user is None or (user.role or "").upper() != "STUDENT":
        raise ValidationError("INVALID_USER", "The user must exist and have the STUDENT role")
    if student_id_for_user(db, payload.user_id) is not None:
        raise ConflictError("USER_ALREADY_LINKED", "The user is already linked to a student")
    if payload.career_id is not None:
        _ensure_career_exists(db, payload.career_id)

    student = Student(
        user_id=payload.user_id,
        name=name,
        status=payload.status,
        date_of_birth=payload.date_of_birth,
        career_id=payload.career_id,
    )
    try:
        db.add(student)
        db.flush()
        if payload.subject_ids:
            replace_registrations(db, student_id=student.id, subject_ids=payload.subject_ids)
        db.commit()
    except SchedulingError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("USER_ALREADY_LINKED", "The user is already linked to a student") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Student create failed for user_id=%s", payload.user_id)
        raise StorageError() from exc

    logger.info("Created student id=%s user_id=%s", student.id, payload.user_id)
    return get_student(db, student.id)


def update_student(db: Session, student_id: int, payload: StudentUpdate) -> StudentDetailOut:
    """Apply personal fields and the registration set in one unit of work."""

    updates = payload.model_dump(exclude_unset=True)
    subject_ids = updates.pop("subject_ids", None)
    updates = {k: v for k, v in updates.items() if v is not None or k in _NULLABLE_FIELDS}
    if not updates and subject_ids is None:
        raise ValidationError("NO_FIELDS", "No fields to update")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if not updates["name"]:
            raise ValidationError("INVALID_NAME", "Student name is required")

    added = removed = 0
    try:
        exists = db.execute(select(Student.id).where(Student.id == student_id)).first() is not None
        if exists and updates.get("career_id") is not None:
            _ensure_career_exists(db, updates["career_id"])
        if updates:
            result = db.execute(
                update(Student).where(Student.id == student_id).values(**updates, updated_at=_utcnow()),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 0:
                raise _not_found(student_id)
        elif not exists:
            raise _not_found(student_id)

        if subject_ids is not None:
            added, removed = replace_registrations(db, student_id=student_id, subject_ids=subject_ids)
        db.commit()
    except SchedulingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Student update failed for id=%s", student_id)
        raise StorageError() from exc

    logger.info(
        "Updated student id=%s fields=%s registrations +%d/-%d",
        student_id,
        sorted(updates),
        added,
        removed,
    )
    db.expire_all()
    return get_student(db, student_id)


def delete_student(db: Session, student_id: int) -> tuple[int, int]:
    """Remove a student with their registrations and seats. Returns (registrations, seats) removed."""

    try:
        registrations = db.execute(delete(SubjectRegistration).where(SubjectRegistration.student_id == student_id))
        seats = db.execute(delete(Enrollment).where(Enrollment.student_id == student_id))
        result = db.execute(delete(Student).where(Student.id == student_id))
        if result.rowcount == 0:
            db.rollback()
            raise _not_found(student_id)
        db.commit()
    except SchedulingError:
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Student delete failed for id=%s", student_id)
        raise StorageError() from exc

    removed = (int(registrations.rowcount or 0), int(seats.rowcount or 0))
    logger.info("Deleted student id=%s (registrations=%d, seats=%d)", student_id, *removed)
    return removed
