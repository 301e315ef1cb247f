from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import Settings
from core.database import get_db
from core.security import decode_token
from models.teacher import Teacher
from models.user import User


bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _extract_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds is not None and creds.credentials:
        return creds.credentials
    cookie_token = request.cookies.get("access_token")
    return cookie_token or None


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    cached = getattr(request.state, "current_user", None)
    if isinstance(cached, User):
        return cached

    token = _extract_token(request, creds)
    if not token:
        raise HTTPException(status_code=401, detail="NOT_AUTHENTICATED")
    try:
        payload = decode_token(token, settings=settings)
    except JWTError:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="USER_DISABLED")

    request.state.current_user = user
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    allowed = {r.upper() for r in roles}

    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        role = (current_user.role or "").upper()
        if role not in allowed:
            raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")
        return current_user

    return _dependency


require_admin = require_roles("ADMIN")


def get_teacher_scope(
    current_user: User = Depends(require_roles("ADMIN", "TEACHER")),
    db: Session = Depends(get_db),
) -> int | None:
    """Resolve which groups the caller may see.

    - ADMIN: None (no scoping)
    - TEACHER: the caller's own teacher id
    """

    if (current_user.role or "").upper() == "ADMIN":
        return None
    teacher_id = db.execute(select(Teacher.id).where(Teacher.user_id == current_user.id)).scalar_one_or_none()
    if teacher_id is None:
        raise HTTPException(status_code=404, detail="TEACHER_NOT_FOUND")
    return int(teacher_id)
