from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import DependencyError
from models.group import Group
from models.student import Student
from models.subject import Subject
from models.subject_registration import SubjectRegistration


# kind -> [(referencing column, error code, message)], checked in order
_REFERENCES = {
    "teacher": [
        (Group.teacher_id, "TEACHER_HAS_GROUPS", "The teacher has groups assigned"),
    ],
    "classroom": [
        (Group.classroom_id, "CLASSROOM_HAS_GROUPS", "The classroom has groups assigned"),
    ],
    "time_slot": [
        (Group.time_slot_id, "TIME_SLOT_HAS_GROUPS", "The time slot has groups assigned"),
    ],
    "subject": [
        (Group.subject_id, "SUBJECT_HAS_GROUPS", "The subject has groups assigned"),
        (SubjectRegistration.subject_id, "SUBJECT_HAS_REGISTRATIONS", "Students are registered for the subject"),
    ],
    "career": [
        (Group.career_id, "CAREER_HAS_GROUPS", "The career has groups assigned"),
        (Subject.career_id, "CAREER_HAS_SUBJECTS", "The career has subjects"),
        (Student.career_id, "CAREER_HAS_STUDENTS", "The career has students"),
    ],
}


def ensure_unreferenced(db: Session, kind: str, entity_id: int) -> None:
    """Reject deleting a catalog entity that other rows still point at."""

    for column, code, message in _REFERENCES[kind]:
        if db.execute(select(column).where(column == entity_id).limit(1)).first() is not None:
            raise DependencyError(code, message)
