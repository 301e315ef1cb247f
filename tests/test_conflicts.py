from __future__ import annotations

from sqlalchemy import func, select

from conftest import group_payload
from models.group import Group
from schemas.group import GroupCreate
from services import conflicts
from services import groups as group_service
from services.conflicts import GroupProposal, check_conflicts


def _proposal(catalog, **overrides) -> GroupProposal:
    return GroupProposal.from_mapping(group_payload(catalog, **overrides))


def test_no_conflict_on_empty_schedule(db, catalog):
    assert check_conflicts(db, _proposal(catalog)) is None


def test_teacher_conflict_names_the_teacher(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    conflict = check_conflicts(
        db,
        _proposal(catalog, name="G2", classroom_id=catalog.classroom_ids[1]),
    )

    assert conflict is not None
    assert conflict.rule == conflicts.RULE_TEACHER
    assert conflict.code == "TEACHER_SLOT_TAKEN"
    assert conflict.name == "Ada Lovelace"
    assert "Ada Lovelace" in conflict.message


def test_classroom_conflict_names_the_classroom(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    conflict = check_conflicts(
        db,
        _proposal(catalog, name="G2", teacher_id=catalog.teacher_ids[1]),
    )

    assert conflict is not None
    assert conflict.rule == conflicts.RULE_CLASSROOM
    assert conflict.name == "A-101"


def test_name_conflict_wins_over_teacher_and_classroom(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    conflict = check_conflicts(db, _proposal(catalog))

    assert conflict.rule == conflicts.RULE_NAME
    assert conflict.code == "GROUP_NAME_TAKEN"


def test_teacher_conflict_reported_before_classroom(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    conflict = check_conflicts(db, _proposal(catalog, name="G2"))

    assert conflict.rule == conflicts.RULE_TEACHER


def test_same_name_in_another_subject_is_fine(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    conflict = check_conflicts(
        db,
        _proposal(
            catalog,
            subject_id=catalog.other_subject_id,
            teacher_id=catalog.teacher_ids[1],
            classroom_id=catalog.classroom_ids[1],
        ),
    )

    assert conflict is None


def test_excluded_group_does_not_conflict_with_itself(db, catalog):
    created = group_service.create_group(db, GroupCreate(**group_payload(catalog)))

    assert check_conflicts(db, _proposal(catalog), exclude_group_id=created.id) is None


def test_check_is_read_only(db, catalog):
    group_service.create_group(db, GroupCreate(**group_payload(catalog)))
    before = db.execute(select(func.count(Group.id))).scalar_one()

    check_conflicts(db, _proposal(catalog, name="G2"))

    assert db.execute(select(func.count(Group.id))).scalar_one() == before
