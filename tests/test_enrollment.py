from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import BASE_TIME, add_students, group_payload
from core.errors import ConflictError
from models.enrollment import Enrollment
from schemas.group import GroupCreate
from services import enrollment
from services import groups as group_service
from services.enrollment import eligible_student_ids, enrolled_count, rebalance_capacity


def _roster(db, group_id: int) -> list[int]:
    return list(
        db.execute(
            select(Enrollment.student_id)
            .where(Enrollment.group_id == group_id)
            .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
        )
        .scalars()
        .all()
    )


def test_pool_is_ordered_by_registration_time(db, catalog):
    # Register in reverse id order to make sure time wins over id.
    late = add_students(db, catalog, 1, start=BASE_TIME + timedelta(hours=1))
    early = add_students(db, catalog, 2, start=BASE_TIME)

    assert eligible_student_ids(db, subject_id=catalog.subject_id) == early + late


def test_pool_ties_break_on_student_id(db, catalog):
    first = add_students(db, catalog, 1, start=BASE_TIME)
    second = add_students(db, catalog, 1, start=BASE_TIME)

    assert eligible_student_ids(db, subject_id=catalog.subject_id) == first + second


def test_pool_ignores_other_subjects(db, catalog):
    add_students(db, catalog, 2, subject_id=catalog.other_subject_id)

    assert eligible_student_ids(db, subject_id=catalog.subject_id) == []


def test_allocation_takes_earliest_registrations_up_to_capacity(db, catalog):
    students = add_students(db, catalog, 3)

    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=2)))

    assert _roster(db, group.id) == students[:2]
    assert group.enrolled_count == 2


def test_allocation_with_small_pool_enrolls_everyone(db, catalog):
    students = add_students(db, catalog, 2)

    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=10)))

    assert _roster(db, group.id) == students


def test_student_seated_in_one_section_is_not_picked_again(db, catalog):
    students = add_students(db, catalog, 3)
    first = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=2)))

    second = group_service.create_group(
        db,
        GroupCreate(
            **group_payload(
                catalog,
                name="G2",
                teacher_id=catalog.teacher_ids[1],
                classroom_id=catalog.classroom_ids[1],
                max_students=5,
            )
        ),
    )

    assert _roster(db, first.id) == students[:2]
    assert _roster(db, second.id) == students[2:]


def test_rebalance_is_noop_when_roster_fits(db, catalog):
    add_students(db, catalog, 2)
    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=2)))

    assert rebalance_capacity(db, group_id=group.id, new_capacity=2) == 0
    assert enrolled_count(db, group_id=group.id) == 2


def test_rebalance_evicts_most_recent_enrollments(db, catalog):
    students = add_students(db, catalog, 5)
    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=5)))
    rows = db.execute(select(Enrollment).where(Enrollment.group_id == group.id).order_by(Enrollment.id)).scalars().all()
    for i, row in enumerate(rows):
        row.enrolled_at = BASE_TIME + timedelta(days=i)
    db.commit()

    evicted = rebalance_capacity(db, group_id=group.id, new_capacity=3)
    db.commit()

    assert evicted == 2
    assert _roster(db, group.id) == students[:3]


def test_rebalance_ties_evict_highest_insertion_id(db, catalog):
    students = add_students(db, catalog, 3)
    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=3)))

    rebalance_capacity(db, group_id=group.id, new_capacity=1)
    db.commit()

    assert _roster(db, group.id) == students[:1]


def test_rebalance_reports_short_delete_as_conflict(db, catalog, monkeypatch):
    add_students(db, catalog, 3)
    group = group_service.create_group(db, GroupCreate(**group_payload(catalog, max_students=3)))

    # Simulate a concurrent change: the roster looks bigger than what can be deleted.
    monkeypatch.setattr(enrollment, "enrolled_count", lambda db, *, group_id: 5)

    with pytest.raises(ConflictError) as excinfo:
        rebalance_capacity(db, group_id=group.id, new_capacity=1)
    db.rollback()

    assert excinfo.value.code == "ENROLLMENT_CHANGED"
    assert len(_roster(db, group.id)) == 3
