from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import require_admin
from api.routes import auth, careers, classrooms, groups, students, subjects, teachers, time_slots


api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# These routers check roles per endpoint: owners may read (and partly edit) their own records.
api_router.include_router(groups.router, prefix="/groups", tags=["groups"])
api_router.include_router(students.router, prefix="/students", tags=["students"])
api_router.include_router(teachers.router, prefix="/teachers", tags=["teachers"])
api_router.include_router(subjects.router, prefix="/subjects", tags=["subjects"])

_protected = [Depends(require_admin)]
api_router.include_router(careers.router, prefix="/careers", tags=["careers"], dependencies=_protected)
api_router.include_router(time_slots.router, prefix="/time-slots", tags=["time-slots"], dependencies=_protected)
api_router.include_router(classrooms.router, prefix="/classrooms", tags=["classrooms"], dependencies=_protected)
