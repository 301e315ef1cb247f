from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from api.deps import get_teacher_scope, require_admin
from core.database import get_db
from schemas.group import GroupCreate, GroupDetailOut, GroupOut, GroupUpdate
from services import groups as group_service


router = APIRouter()


@router.get("/", response_model=list[GroupOut])
def list_groups(
    subject_id: int | None = Query(default=None, gt=0),
    career_id: int | None = Query(default=None, gt=0),
    semester: int | None = Query(default=None, gt=0),
    scope_teacher_id: int | None = Depends(get_teacher_scope),
    db: Session = Depends(get_db),
) -> list[GroupOut]:
    return group_service.list_groups(
        db,
        scope_teacher_id=scope_teacher_id,
        subject_id=subject_id,
        career_id=career_id,
        semester=semester,
    )


@router.get("/{group_id}", response_model=GroupDetailOut)
def get_group(
    group_id: int,
    scope_teacher_id: int | None = Depends(get_teacher_scope),
    db: Session = Depends(get_db),
) -> GroupDetailOut:
    return group_service.get_group(db, group_id, scope_teacher_id=scope_teacher_id)


@router.post("/", response_model=GroupOut, status_code=201)
def create_group(
    payload: GroupCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> GroupOut:
    return group_service.create_group(db, payload)


@router.put("/{group_id}", response_model=GroupOut)
@router.patch("/{group_id}", response_model=GroupOut)
def update_group(
    group_id: int,
    payload: GroupUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> GroupOut:
    return group_service.update_group(db, group_id, payload)


@router.delete("/{group_id}", status_code=204)
def delete_group(
    group_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    group_service.delete_group(db, group_id)
    return Response(status_code=204)
