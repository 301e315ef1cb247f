from __future__ import annotations

from conftest import add_students, group_payload
from models.user import User


def test_time_slot_shift_is_inferred_from_hour(client, catalog, admin_headers):
    morning = client.post("/api/time-slots/", json={"time": "11:59"}, headers=admin_headers)
    afternoon = client.post("/api/time-slots/", json={"time": "12:00"}, headers=admin_headers)

    assert morning.status_code == 201
    assert morning.json()["shift"] == "MORNING"
    assert afternoon.json()["shift"] == "AFTERNOON"


def test_time_slot_explicit_shift_wins(client, catalog, admin_headers):
    resp = client.post("/api/time-slots/", json={"time": "07:00", "shift": "AFTERNOON"}, headers=admin_headers)

    assert resp.json()["shift"] == "AFTERNOON"


def test_duplicate_time_slot_is_a_conflict(client, catalog, admin_headers):
    resp = client.post("/api/time-slots/", json={"time": "08:00"}, headers=admin_headers)

    assert resp.status_code == 409
    assert resp.json()["code"] == "TIME_SLOT_TAKEN"


def test_changing_time_reinfers_shift(client, catalog, admin_headers):
    slot_id = catalog.slot_ids[0]

    resp = client.patch(f"/api/time-slots/{slot_id}", json={"time": "16:00"}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["shift"] == "AFTERNOON"


def test_time_slot_with_groups_cannot_be_deleted(client, catalog, admin_headers):
    client.post("/api/groups/", json=group_payload(catalog), headers=admin_headers)

    resp = client.delete(f"/api/time-slots/{catalog.slot_ids[0]}", headers=admin_headers)

    assert resp.status_code == 409
    assert resp.json()["code"] == "TIME_SLOT_HAS_GROUPS"


def test_unused_time_slot_delete_and_not_found(client, catalog, admin_headers):
    slot_id = catalog.slot_ids[2]

    assert client.delete(f"/api/time-slots/{slot_id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/time-slots/{slot_id}", headers=admin_headers).status_code == 404


def test_classroom_teacher_subject_deletes_are_guarded(client, catalog, admin_headers):
    client.post("/api/groups/", json=group_payload(catalog), headers=admin_headers)

    classroom = client.delete(f"/api/classrooms/{catalog.classroom_ids[0]}", headers=admin_headers)
    teacher = client.delete(f"/api/teachers/{catalog.teacher_ids[0]}", headers=admin_headers)
    subject = client.delete(f"/api/subjects/{catalog.subject_id}", headers=admin_headers)

    assert classroom.json()["code"] == "CLASSROOM_HAS_GROUPS"
    assert teacher.json()["code"] == "TEACHER_HAS_GROUPS"
    assert subject.json()["code"] == "SUBJECT_HAS_GROUPS"
    assert {classroom.status_code, teacher.status_code, subject.status_code} == {409}


def test_classroom_crud(client, catalog, admin_headers):
    created = client.post("/api/classrooms/", json={"name": "B-201", "building": "B"}, headers=admin_headers)
    assert created.status_code == 201
    classroom_id = created.json()["id"]

    dup = client.post("/api/classrooms/", json={"name": "B-201", "building": "C"}, headers=admin_headers)
    assert dup.status_code == 409

    renamed = client.patch(f"/api/classrooms/{classroom_id}", json={"name": "B-202"}, headers=admin_headers)
    assert renamed.json()["name"] == "B-202"
    assert renamed.json()["building"] == "B"

    assert client.delete(f"/api/classrooms/{classroom_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/classrooms/{classroom_id}", headers=admin_headers).status_code == 404


def test_subjects_filter_by_career(client, catalog, admin_headers):
    resp = client.get("/api/subjects/", params={"career_id": catalog.career_id}, headers=admin_headers)

    assert [s["name"] for s in resp.json()] == ["Databases", "Networks"]


def test_catalog_is_admin_only(client, catalog, auth_headers):
    resp = client.get("/api/teachers/", headers=auth_headers(catalog.teacher_user_ids[0], "TEACHER", "teacher1"))

    assert resp.status_code == 403


def test_career_crud_and_delete_guard(client, catalog, admin_headers):
    created = client.post("/api/careers/", json={"name": "Mechatronics", "semesters": 8}, headers=admin_headers)
    assert created.status_code == 201
    career_id = created.json()["id"]

    dup = client.post("/api/careers/", json={"name": "Mechatronics", "semesters": 9}, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.json()["code"] == "CAREER_NAME_TAKEN"

    updated = client.put(f"/api/careers/{career_id}", json={"semesters": 10}, headers=admin_headers)
    assert updated.json()["semesters"] == 10
    assert updated.json()["name"] == "Mechatronics"

    in_use = client.delete(f"/api/careers/{catalog.career_id}", headers=admin_headers)
    assert in_use.status_code == 409
    assert in_use.json()["code"] == "CAREER_HAS_SUBJECTS"

    assert client.delete(f"/api/careers/{career_id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/careers/{career_id}", headers=admin_headers).status_code == 404


def test_subject_create_and_update(client, catalog, admin_headers):
    created = client.post(
        "/api/subjects/",
        json={"career_id": catalog.career_id, "name": "Compilers", "credits": 8, "semester": 6},
        headers=admin_headers,
    )
    assert created.status_code == 201
    subject_id = created.json()["id"]

    dup = client.post(
        "/api/subjects/",
        json={"career_id": catalog.career_id, "name": "Databases", "credits": 4, "semester": 2},
        headers=admin_headers,
    )
    assert dup.status_code == 409
    assert dup.json()["code"] == "SUBJECT_NAME_TAKEN"

    renamed_onto_existing = client.patch(f"/api/subjects/{subject_id}", json={"name": "Networks"}, headers=admin_headers)
    assert renamed_onto_existing.status_code == 409

    updated = client.patch(f"/api/subjects/{subject_id}", json={"credits": 10}, headers=admin_headers)
    assert updated.json()["credits"] == 10
    assert updated.json()["name"] == "Compilers"

    unknown_career = client.patch(f"/api/subjects/{subject_id}", json={"career_id": 999}, headers=admin_headers)
    assert unknown_career.status_code == 400
    assert unknown_career.json()["code"] == "INVALID_REFERENCE"


def test_subject_with_registrations_cannot_be_deleted(client, db, catalog, admin_headers):
    add_students(db, catalog, 1, subject_id=catalog.other_subject_id)

    resp = client.delete(f"/api/subjects/{catalog.other_subject_id}", headers=admin_headers)

    assert resp.status_code == 409
    assert resp.json()["code"] == "SUBJECT_HAS_REGISTRATIONS"


def test_subjects_are_readable_but_not_writable_by_students(client, catalog, auth_headers):
    headers = auth_headers(catalog.student_user_id, "STUDENT", "pupil")

    assert client.get("/api/subjects/", headers=headers).status_code == 200
    created = client.post(
        "/api/subjects/",
        json={"career_id": catalog.career_id, "name": "Compilers", "credits": 8, "semester": 6},
        headers=headers,
    )
    assert created.status_code == 403


def test_teacher_create_and_self_service(client, db, catalog, admin_headers, auth_headers):
    user = User(username="teacher4", email="teacher4@school.test", password_hash="x", role="TEACHER")
    db.add(user)
    db.commit()

    created = client.post(
        "/api/teachers/",
        json={"user_id": user.id, "name": "Barbara Liskov", "degree": "DOCTORADO"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    teacher_id = created.json()["id"]

    linked = client.post(
        "/api/teachers/",
        json={"user_id": user.id, "name": "Again", "degree": "MAESTRIA"},
        headers=admin_headers,
    )
    assert linked.status_code == 409
    assert linked.json()["code"] == "USER_ALREADY_LINKED"

    headers = auth_headers(user.id, "TEACHER", "teacher4")
    assert client.get("/api/teachers/me", headers=headers).json()["id"] == teacher_id

    updated = client.patch(f"/api/teachers/{teacher_id}", json={"degree": "MAESTRIA"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["degree"] == "MAESTRIA"
    assert updated.json()["name"] == "Barbara Liskov"

    someone_else = client.patch(f"/api/teachers/{catalog.teacher_ids[0]}", json={"name": "X"}, headers=headers)
    assert someone_else.status_code == 403


def test_teacher_requires_a_teacher_user(client, catalog, admin_headers):
    resp = client.post(
        "/api/teachers/",
        json={"user_id": catalog.student_user_id, "name": "Nope", "degree": "DOCTORADO"},
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_USER"
