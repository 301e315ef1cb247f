from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import NotFoundError, SchedulingError, StorageError, ValidationError
from models.career import Career
from models.classroom import Classroom
from models.enrollment import Enrollment
from models.group import Group
from models.student import Student
from models.subject import Subject
from models.teacher import Teacher
from models.time_slot import TimeSlot
from models.user import User
from schemas.group import GroupCreate, GroupDetailOut, GroupOut, GroupUpdate, RosterEntryOut
from services.conflicts import GroupProposal, check_conflicts, conflict_from_integrity_error
from services.enrollment import allocate_initial_enrollment, rebalance_capacity


logger = logging.getLogger(__name__)


# Fields whose change can create a scheduling collision.
_SCHEDULING_FIELDS = {"name", "subject_id", "teacher_id", "classroom_id", "time_slot_id"}

_POSITIVE_FIELDS = (
    "career_id",
    "subject_id",
    "teacher_id",
    "classroom_id",
    "time_slot_id",
    "semester",
    "max_students",
)

_REFERENCES = (
    ("career_id", Career, "career"),
    ("subject_id", Subject, "subject"),
    ("teacher_id", Teacher, "teacher"),
    ("classroom_id", Classroom, "classroom"),
    ("time_slot_id", TimeSlot, "time slot"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _not_found(group_id: int) -> NotFoundError:
    return NotFoundError("GROUP_NOT_FOUND", f"Group {group_id} not found")


def _clean_fields(data: dict[str, Any]) -> dict[str, Any]:
    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("INVALID_NAME", "Group name is required")
        data["name"] = name

    for field in _POSITIVE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"INVALID_{field.upper()}", f"{field} must be a positive integer")
    return data


def _ensure_references_exist(db: Session, data: dict[str, Any]) -> None:
    for field, model, label in _REFERENCES:
        if field not in data:
            continue
        exists = db.execute(select(model.id).where(model.id == data[field]).limit(1)).first()
        if exists is None:
            raise ValidationError("INVALID_REFERENCE", f"Unknown {label} id {data[field]}")


def _enriched_select():
    enrolled = (
        select(func.count(Enrollment.id))
        .where(Enrollment.group_id == Group.id)
        .correlate(Group)
        .scalar_subquery()
    )
    return (
        select(
            *Group.__table__.columns,
            Career.name.label("career_name"),
            Subject.name.label("subject_name"),
            Teacher.name.label("teacher_name"),
            Classroom.name.label("classroom_name"),
            TimeSlot.time.label("time_slot_time"),
            TimeSlot.shift.label("time_slot_shift"),
            enrolled.label("enrolled_count"),
        )
        .outerjoin(Career, Career.id == Group.career_id)
        .outerjoin(Subject, Subject.id == Group.subject_id)
        .outerjoin(Teacher, Teacher.id == Group.teacher_id)
        .outerjoin(Classroom, Classroom.id == Group.classroom_id)
        .outerjoin(TimeSlot, TimeSlot.id == Group.time_slot_id)
    )


def _load_group_out(db: Session, group_id: int, *, scope_teacher_id: int | None = None) -> GroupOut | None:
    q = _enriched_select().where(Group.id == group_id)
    if scope_teacher_id is not None:
        q = q.where(Group.teacher_id == scope_teacher_id)
    row = db.execute(q).first()
    if row is None:
        return None
    return GroupOut.model_validate(dict(row._mapping))


def list_groups(
    db: Session,
    *,
    scope_teacher_id: int | None = None,
    subject_id: int | None = None,
    career_id: int | None = None,
    semester: int | None = None,
) -> list[GroupOut]:
    """Enriched groups, newest first.

    `scope_teacher_id` restricts the listing to the groups that teacher teaches.
    """

    q = _enriched_select()
    if scope_teacher_id is not None:
        q = q.where(Group.teacher_id == scope_teacher_id)
    if subject_id is not None:
        q = q.where(Group.subject_id == subject_id)
    if career_id is not None:
        q = q.where(Group.career_id == career_id)
    if semester is not None:
        q = q.where(Group.semester == semester)
    rows = db.execute(q.order_by(Group.id.desc())).all()
    return [GroupOut.model_validate(dict(r._mapping)) for r in rows]


def get_roster(db: Session, group_id: int) -> list[RosterEntryOut]:
    rows = db.execute(
        select(
            Enrollment.student_id,
            Student.name,
            Student.status,
            User.email,
            Enrollment.enrolled_at,
        )
        .join(Student, Student.id == Enrollment.student_id)
        .outerjoin(User, User.id == Student.user_id)
        .where(Enrollment.group_id == group_id)
        .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
    ).all()
    return [RosterEntryOut.model_validate(dict(r._mapping)) for r in rows]


def get_group(db: Session, group_id: int, *, scope_teacher_id: int | None = None) -> GroupDetailOut:
    group = _load_group_out(db, group_id, scope_teacher_id=scope_teacher_id)
    if group is None:
        raise _not_found(group_id)
    return GroupDetailOut(**group.model_dump(), students=get_roster(db, group_id))


def create_group(db: Session, payload: GroupCreate) -> GroupOut:
    data = _clean_fields(payload.model_dump())
    _ensure_references_exist(db, data)

    proposal = GroupProposal.from_mapping(data)
    conflict = check_conflicts(db, proposal)
    if conflict is not None:
        logger.warning("Rejected group create: %s (%s)", conflict.code, conflict.message)
        raise conflict.as_error()

    now = _utcnow()
    group = Group(**data, created_at=now, updated_at=now)
    try:
        db.add(group)
        db.flush()
        enrolled = allocate_initial_enrollment(
            db,
            group_id=group.id,
            subject_id=group.subject_id,
            capacity=group.max_students,
            enrolled_at=now,
        )
        group_id = group.id
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Group create hit a storage constraint; translating to conflict", exc_info=exc)
        raise conflict_from_integrity_error(db, exc, proposal) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Group create failed for name=%r", data["name"])
        raise StorageError() from exc

    logger.info(
        "Created group id=%s name=%r subject_id=%s enrolled=%d/%d",
        group_id,
        data["name"],
        data["subject_id"],
        enrolled,
        data["max_students"],
    )
    out = _load_group_out(db, group_id)
    if out is None:
        raise _not_found(group_id)
    return out


def update_group(db: Session, group_id: int, payload: GroupUpdate) -> GroupOut:
    """Apply the fields present in `payload`; absent fields keep their value.

    When `max_students` is given, surplus students are evicted in the same
    unit of work as the update.
    """

    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("NO_FIELDS", "No fields to update")
    updates = _clean_fields(updates)

    # A missing group falls through to the UPDATE, whose rowcount reports it.
    current = db.get(Group, group_id)
    proposal: GroupProposal | None = None
    if current is not None:
        _ensure_references_exist(db, updates)
        proposal = GroupProposal(
            name=updates.get("name", current.name),
            subject_id=updates.get("subject_id", current.subject_id),
            teacher_id=updates.get("teacher_id", current.teacher_id),
            classroom_id=updates.get("classroom_id", current.classroom_id),
            time_slot_id=updates.get("time_slot_id", current.time_slot_id),
        )
        if _SCHEDULING_FIELDS & updates.keys():
            conflict = check_conflicts(db, proposal, exclude_group_id=group_id)
            if conflict is not None:
                logger.warning("Rejected group update id=%s: %s (%s)", group_id, conflict.code, conflict.message)
                raise conflict.as_error()

    evicted = 0
    try:
        result = db.execute(
            update(Group).where(Group.id == group_id).values(**updates, updated_at=_utcnow()),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount == 0:
            db.rollback()
            raise _not_found(group_id)
        if "max_students" in updates:
            evicted = rebalance_capacity(db, group_id=group_id, new_capacity=updates["max_students"])
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Group update id=%s hit a storage constraint; translating to conflict", group_id, exc_info=exc)
        raise conflict_from_integrity_error(db, exc, proposal, exclude_group_id=group_id) from exc
    except SchedulingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Group update failed for id=%s", group_id)
        raise StorageError() from exc

    if current is not None:
        db.expire(current)
    logger.info("Updated group id=%s fields=%s evicted=%d", group_id, sorted(updates), evicted)
    out = _load_group_out(db, group_id)
    if out is None:
        raise _not_found(group_id)
    return out


def delete_group(db: Session, group_id: int) -> int:
    """Remove a group and its roster atomically. Returns the roster size removed."""

    try:
        roster = db.execute(delete(Enrollment).where(Enrollment.group_id == group_id))
        result = db.execute(delete(Group).where(Group.id == group_id))
        if result.rowcount == 0:
            db.rollback()
            raise _not_found(group_id)
        db.commit()
    except SchedulingError:
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Group delete failed for id=%s", group_id)
        raise StorageError() from exc

    removed = int(roster.rowcount or 0)
    logger.info("Deleted group id=%s (removed %d enrollment(s))", group_id, removed)
    return removed
