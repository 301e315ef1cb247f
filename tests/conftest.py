from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from core.config import Settings
from core.database import build_engine, build_session_factory
from core.security import create_access_token
from main import create_app
from models import Base, Career, Classroom, Student, Subject, SubjectRegistration, Teacher, TimeSlot, User


BASE_TIME = datetime(2024, 1, 15, 9, 0, 0)


@dataclass
class Catalog:
    career_id: int
    subject_id: int
    other_subject_id: int
    teacher_ids: list[int]
    teacher_user_ids: list[int]
    classroom_ids: list[int]
    slot_ids: list[int]
    admin_user_id: int
    student_user_id: int
    student_ids: list[int] = field(default_factory=list)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret",
        create_schema_on_startup=False,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


def _user(db, username: str, role: str) -> User:
    user = User(username=username, email=f"{username}@school.test", password_hash="x", role=role)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def catalog(db) -> Catalog:
    admin = _user(db, "admin", "ADMIN")
    student_user = _user(db, "pupil", "STUDENT")

    career = Career(name="Systems Engineering", semesters=9)
    db.add(career)
    db.flush()

    subject = Subject(career_id=career.id, name="Databases", credits=8, semester=3)
    other = Subject(career_id=career.id, name="Networks", credits=6, semester=3)
    db.add_all([subject, other])
    db.flush()

    teacher_ids: list[int] = []
    teacher_user_ids: list[int] = []
    for idx, name in enumerate(["Ada Lovelace", "Alan Turing", "Grace Hopper"], start=1):
        user = _user(db, f"teacher{idx}", "TEACHER")
        teacher = Teacher(user_id=user.id, name=name, degree="DOCTORADO")
        db.add(teacher)
        db.flush()
        teacher_ids.append(teacher.id)
        teacher_user_ids.append(user.id)

    rooms = [Classroom(name=n, building="A") for n in ("A-101", "A-102", "A-103")]
    db.add_all(rooms)
    slots = [
        TimeSlot(time=time(8, 0), shift="MORNING"),
        TimeSlot(time=time(10, 0), shift="MORNING"),
        TimeSlot(time=time(14, 0), shift="AFTERNOON"),
    ]
    db.add_all(slots)
    db.commit()

    return Catalog(
        career_id=career.id,
        subject_id=subject.id,
        other_subject_id=other.id,
        teacher_ids=teacher_ids,
        teacher_user_ids=teacher_user_ids,
        classroom_ids=[r.id for r in rooms],
        slot_ids=[s.id for s in slots],
        admin_user_id=admin.id,
        student_user_id=student_user.id,
    )


def add_students(db, catalog: Catalog, count: int, *, subject_id: int | None = None, start: datetime = BASE_TIME) -> list[int]:
    """Create `count` students registered for the subject one minute apart, in order."""

    subject_id = subject_id or catalog.subject_id
    ids: list[int] = []
    offset = len(catalog.student_ids)
    for i in range(count):
        n = offset + i
        user = _user(db, f"student{n}", "STUDENT")
        student = Student(user_id=user.id, career_id=catalog.career_id, name=f"Student {n}", status="ACTIVE")
        db.add(student)
        db.flush()
        db.add(SubjectRegistration(student_id=student.id, subject_id=subject_id, registered_at=start + timedelta(minutes=i)))
        ids.append(student.id)
    db.commit()
    catalog.student_ids.extend(ids)
    return ids


def group_payload(catalog: Catalog, **overrides) -> dict:
    data = {
        "name": "G1",
        "career_id": catalog.career_id,
        "subject_id": catalog.subject_id,
        "teacher_id": catalog.teacher_ids[0],
        "classroom_id": catalog.classroom_ids[0],
        "time_slot_id": catalog.slot_ids[0],
        "semester": 3,
        "max_students": 2,
    }
    data.update(overrides)
    return data


@pytest.fixture
def client(settings, session_factory):
    app = create_app(settings=settings, session_factory=session_factory)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(settings):
    def _headers(user_id: int, role: str, username: str = "someone") -> dict:
        token = create_access_token(user_id=user_id, username=username, role=role, settings=settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(catalog, auth_headers) -> dict:
    return auth_headers(catalog.admin_user_id, "ADMIN", "admin")
