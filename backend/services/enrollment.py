from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from core.errors import ConflictError
from models.enrollment import Enrollment
from models.group import Group
from models.student import Student
from models.subject_registration import SubjectRegistration


logger = logging.getLogger(__name__)


def eligible_student_ids(db: Session, *, subject_id: int, limit: int | None = None) -> list[int]:
    """Students registered for `subject_id` and not seated in any group of it yet.

    Earliest registration first; student id breaks ties.
    """

    already_seated = (
        select(Enrollment.student_id)
        .join(Group, Group.id == Enrollment.group_id)
        .where(Group.subject_id == subject_id)
    )
    q = (
        select(SubjectRegistration.student_id)
        .join(Student, Student.id == SubjectRegistration.student_id)
        .where(SubjectRegistration.subject_id == subject_id)
        .where(SubjectRegistration.student_id.not_in(already_seated))
        .order_by(SubjectRegistration.registered_at.asc(), SubjectRegistration.student_id.asc())
    )
    if limit is not None:
        q = q.limit(limit)
    return [int(sid) for sid in db.execute(q).scalars().all()]


def allocate_initial_enrollment(
    db: Session,
    *,
    group_id: int,
    subject_id: int,
    capacity: int,
    enrolled_at: datetime | None = None,
) -> int:
    """Seat up to `capacity` eligible students in a freshly inserted group.

    Runs inside the caller's unit of work and does not commit. Not idempotent:
    only the group-creation path may call it, exactly once per group.
    """

    if capacity <= 0:
        return 0

    stamp = enrolled_at or datetime.now(timezone.utc)
    student_ids = eligible_student_ids(db, subject_id=subject_id, limit=capacity)

    # Insertion order follows priority, so Enrollment.id mirrors it.
    db.add_all(Enrollment(group_id=group_id, student_id=sid, enrolled_at=stamp) for sid in student_ids)
    db.flush()

    logger.info(
        "Allocated %d student(s) to group_id=%s (subject_id=%s capacity=%d)",
        len(student_ids),
        group_id,
        subject_id,
        capacity,
    )
    return len(student_ids)


def enrolled_count(db: Session, *, group_id: int) -> int:
    q = select(func.count(Enrollment.id)).where(Enrollment.group_id == group_id)
    return int(db.execute(q).scalar_one())


def rebalance_capacity(db: Session, *, group_id: int, new_capacity: int) -> int:
    """Evict the most recently enrolled students until the roster fits.

    Eviction is last-in-first-out on `enrolled_at`, then on insertion id.
    Runs inside the caller's unit of work and does not commit.
    """

    count = enrolled_count(db, group_id=group_id)
    if count <= new_capacity:
        return 0

    overflow = count - new_capacity
    victims = (
        db.execute(
            select(Enrollment.id)
            .where(Enrollment.group_id == group_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .limit(overflow)
        )
        .scalars()
        .all()
    )

    deleted = 0
    if victims:
        result = db.execute(
            delete(Enrollment).where(Enrollment.id.in_(victims)),
            execution_options={"synchronize_session": False},
        )
        deleted = int(result.rowcount or 0)

    if deleted != overflow:
        logger.warning(
            "Rebalance of group_id=%s removed %d of %d expected enrollments",
            group_id,
            deleted,
            overflow,
        )
        raise ConflictError(
            "ENROLLMENT_CHANGED",
            "The group's enrollment changed while reducing its capacity. Please retry.",
            rule="ENROLLMENT",
        )

    logger.info("Evicted %d student(s) from group_id=%s (new capacity=%d)", deleted, group_id, new_capacity)
    return deleted
