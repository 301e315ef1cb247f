from __future__ import annotations

from core.security import create_access_token, decode_token, hash_password, verify_password
from models.user import User


def test_password_roundtrip():
    hashed = hash_password("s3cret")

    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "not-a-bcrypt-hash")


def test_token_carries_identity(settings):
    token = create_access_token(user_id=7, username="ada", role="TEACHER", settings=settings)

    payload = decode_token(token, settings=settings)

    assert payload["sub"] == "7"
    assert payload["role"] == "TEACHER"


def test_login_by_username_or_email_and_me(client, db):
    db.add(User(username="root", email="root@school.test", password_hash=hash_password("pw-123"), role="ADMIN"))
    db.commit()

    by_name = client.post("/api/auth/login", json={"username": "root", "password": "pw-123"})
    by_email = client.post("/api/auth/login", json={"username": "ROOT@school.test", "password": "pw-123"})

    assert by_name.status_code == 200
    assert by_email.status_code == 200
    token = by_name.json()["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "root"
    assert me.json()["role"] == "ADMIN"


def test_login_rejects_bad_password(client, db):
    db.add(User(username="root", email="root@school.test", password_hash=hash_password("pw-123"), role="ADMIN"))
    db.commit()

    resp = client.post("/api/auth/login", json={"username": "root", "password": "nope"})

    assert resp.status_code == 401


def test_garbage_token_is_rejected(client, catalog):
    resp = client.get("/api/groups/", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "INVALID_TOKEN"


def test_disabled_user_is_forbidden(client, db, catalog, auth_headers):
    user = db.get(User, catalog.admin_user_id)
    user.is_active = False
    db.commit()

    resp = client.get("/api/groups/", headers=auth_headers(catalog.admin_user_id, "ADMIN"))

    assert resp.status_code == 403
