from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import ConflictError, StorageError
from models.classroom import Classroom
from models.group import Group
from models.subject import Subject
from models.teacher import Teacher


logger = logging.getLogger(__name__)


RULE_NAME = "NAME"
RULE_TEACHER = "TEACHER"
RULE_CLASSROOM = "CLASSROOM"

# Order matters: only the first hit is reported.
RULE_ORDER = (RULE_NAME, RULE_TEACHER, RULE_CLASSROOM)

_RULE_CODES = {
    RULE_NAME: "GROUP_NAME_TAKEN",
    RULE_TEACHER: "TEACHER_SLOT_TAKEN",
    RULE_CLASSROOM: "CLASSROOM_SLOT_TAKEN",
}

# Postgres reports the constraint name, SQLite reports the column list.
_CONSTRAINT_MARKERS = {
    RULE_NAME: ("uq_groups_subject_name", "groups.subject_id, groups.name"),
    RULE_TEACHER: ("uq_groups_teacher_slot", "groups.teacher_id, groups.time_slot_id"),
    RULE_CLASSROOM: ("uq_groups_classroom_slot", "groups.classroom_id, groups.time_slot_id"),
}


@dataclass(frozen=True)
class GroupProposal:
    name: str
    subject_id: int
    teacher_id: int
    classroom_id: int
    time_slot_id: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GroupProposal":
        return cls(
            name=str(data["name"]),
            subject_id=int(data["subject_id"]),
            teacher_id=int(data["teacher_id"]),
            classroom_id=int(data["classroom_id"]),
            time_slot_id=int(data["time_slot_id"]),
        )


@dataclass(frozen=True)
class Conflict:
    rule: str
    code: str
    message: str
    name: str | None
    group_id: int | None = None

    def as_error(self) -> ConflictError:
        return ConflictError(self.code, self.message, rule=self.rule, name=self.name)


def _display_name(db: Session, model, obj_id: int) -> str:
    value = db.execute(select(model.name).where(model.id == obj_id)).scalar_one_or_none()
    return str(value) if value is not None else f"#{obj_id}"


def describe_conflict(db: Session, rule: str, proposal: GroupProposal, *, group_id: int | None = None) -> Conflict:
    """Build the user-facing description of a collision for `rule`."""

    if rule == RULE_NAME:
        subject_name = _display_name(db, Subject, proposal.subject_id)
        return Conflict(
            rule=rule,
            code=_RULE_CODES[rule],
            message=f"A group named '{proposal.name}' already exists for subject '{subject_name}'",
            name=proposal.name,
            group_id=group_id,
        )
    if rule == RULE_TEACHER:
        teacher_name = _display_name(db, Teacher, proposal.teacher_id)
        return Conflict(
            rule=rule,
            code=_RULE_CODES[rule],
            message=f"Teacher '{teacher_name}' already teaches a group at this time slot",
            name=teacher_name,
            group_id=group_id,
        )
    if rule == RULE_CLASSROOM:
        classroom_name = _display_name(db, Classroom, proposal.classroom_id)
        return Conflict(
            rule=rule,
            code=_RULE_CODES[rule],
            message=f"Classroom '{classroom_name}' is already booked at this time slot",
            name=classroom_name,
            group_id=group_id,
        )
    raise ValueError(f"unknown conflict rule {rule!r}")


def _rule_query(rule: str, proposal: GroupProposal):
    q = select(Group.id)
    if rule == RULE_NAME:
        return q.where(Group.name == proposal.name).where(Group.subject_id == proposal.subject_id)
    if rule == RULE_TEACHER:
        return q.where(Group.teacher_id == proposal.teacher_id).where(Group.time_slot_id == proposal.time_slot_id)
    return q.where(Group.classroom_id == proposal.classroom_id).where(Group.time_slot_id == proposal.time_slot_id)


def check_conflicts(
    db: Session,
    proposal: GroupProposal,
    *,
    exclude_group_id: int | None = None,
) -> Conflict | None:
    """Return the first collision of `proposal` with an existing group, or None.

    Checks run in a fixed order (duplicate name, teacher, classroom) and stop
    at the first hit. Read-only.
    """

    try:
        for rule in RULE_ORDER:
            q = _rule_query(rule, proposal)
            if exclude_group_id is not None:
                q = q.where(Group.id != exclude_group_id)
            hit = db.execute(q.limit(1)).scalar_one_or_none()
            if hit is not None:
                return describe_conflict(db, rule, proposal, group_id=int(hit))
    except SQLAlchemyError as exc:
        logger.exception("Conflict check failed for proposal=%r", proposal)
        raise StorageError() from exc
    return None


def conflict_from_integrity_error(
    db: Session,
    exc: IntegrityError,
    proposal: GroupProposal | None,
    *,
    exclude_group_id: int | None = None,
) -> ConflictError:
    """Translate a unique-constraint violation on `groups` into a ConflictError.

    Call after the failed unit of work was rolled back. The competing row is
    committed by then, so re-running the checker yields the same error a
    sequential request would have seen.
    """

    if proposal is None:
        return ConflictError("CONFLICT", "The group conflicts with existing data")

    conflict = check_conflicts(db, proposal, exclude_group_id=exclude_group_id)
    if conflict is not None:
        return conflict.as_error()

    raw = str(getattr(exc, "orig", exc))
    for rule in RULE_ORDER:
        if any(marker in raw for marker in _CONSTRAINT_MARKERS[rule]):
            try:
                return describe_conflict(db, rule, proposal).as_error()
            except SQLAlchemyError as lookup_exc:
                raise StorageError() from lookup_exc

    return ConflictError("CONFLICT", "The group conflicts with existing data")
