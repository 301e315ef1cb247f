from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from core.config import Settings
from core.security import hash_password
from models import Base
from models.user import User


logger = logging.getLogger(__name__)


def init_schema(engine: Engine) -> None:
    """Create missing tables. Safe to run on every startup."""

    Base.metadata.create_all(engine)


def seed_admin_if_configured(db: Session, settings: Settings) -> bool:
    username = settings.seed_admin_username
    password = settings.seed_admin_password
    if not username or not password:
        return False

    email = f"{username.lower()}@localhost"
    existing = db.execute(
        select(User.id).where(
            or_(func.lower(User.username) == username.lower(), func.lower(User.email) == email)
        )
    ).first()
    if existing is not None:
        return False

    db.add(
        User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role="ADMIN",
            is_active=True,
        )
    )
    db.commit()

    logger.warning(
        "Seeded initial admin user from env (username=%r). Change the password after first login.",
        username,
    )
    return True


def bootstrap(engine: Engine, db: Session, settings: Settings) -> None:
    init_schema(engine)
    seed_admin_if_configured(db, settings)
