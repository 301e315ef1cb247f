from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from api.deps import get_current_user, get_settings
from core.config import Settings
from core.database import get_db
from core.security import create_access_token, verify_password
from models.user import User
from schemas.auth import LoginRequest, LoginResponse, MeResponse


router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    identifier = str(payload.username or "").strip()
    ip = request.client.host if request.client else "unknown"

    # Accept either the username or the email, case-insensitively.
    q_user = select(User).where(
        or_(
            func.lower(User.username) == func.lower(identifier),
            func.lower(User.email) == func.lower(identifier),
        )
    )
    user = db.execute(q_user).scalars().first()
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Login failed ip=%s identifier=%r", ip, identifier)
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")
    if not user.is_active:
        logger.warning("Login failed (disabled user) ip=%s identifier=%r", ip, identifier)
        raise HTTPException(status_code=403, detail="USER_DISABLED")

    token = create_access_token(user_id=user.id, username=user.username, role=user.role, settings=settings)
    logger.info("Login ok user_id=%s role=%s", user.id, user.role)
    return LoginResponse(access_token=token)


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        role=current_user.role,
        is_active=bool(current_user.is_active),
        created_at=current_user.created_at,
    )
