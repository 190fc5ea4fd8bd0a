"""Tests for registration, login and principal resolution."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from pydantic import ValidationError as ModelError

from auth import Principal, authenticate, create_token, ensure_default_admin
from config import JWT_ALG, JWT_SECRET
from errors import Forbidden, Unauthenticated


class TestRegisterAndLogin:
    def test_register_returns_token(self, client: TestClient) -> None:
        resp = client.post("/auth/register", json={
            "name": "Nila", "email": "nila@example.com", "password": "pw123456",
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["token"]
        assert body["user"] == {"name": "Nila", "email": "nila@example.com", "role": "user"}

    def test_duplicate_email(self, client: TestClient, user_headers: dict) -> None:
        resp = client.post("/auth/register", json={
            "name": "Again", "email": "citizen@example.com", "password": "pw123456",
        })
        assert resp.status_code == 409

    def test_login_roundtrip(self, client: TestClient, user_headers: dict) -> None:
        resp = client.post("/auth/login", json={"email": "citizen@example.com", "password": "s3cret-pass"})
        assert resp.status_code == 200
        token = resp.json()["token"]
        me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "citizen@example.com"
        assert me.json()["isAdmin"] is False

    def test_login_wrong_password(self, client: TestClient, user_headers: dict) -> None:
        resp = client.post("/auth/login", json={"email": "citizen@example.com", "password": "nope"})
        assert resp.status_code == 401

    def test_login_disabled_account(self, client: TestClient, user_headers: dict, db) -> None:
        db["user"].update_one({"email": "citizen@example.com"}, {"$set": {"is_active": False}})
        resp = client.post("/auth/login", json={"email": "citizen@example.com", "password": "s3cret-pass"})
        assert resp.status_code == 403

    def test_register_ignores_requested_role(self, client: TestClient, db) -> None:
        resp = client.post("/auth/register", json={
            "name": "Mallory", "email": "mallory@example.com", "password": "pw123456", "role": "admin",
        })
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "user"
        assert db["user"].find_one({"email": "mallory@example.com"})["role"] == "user"

        headers = {"Authorization": f"Bearer {resp.json()['token']}"}
        assert client.get("/me", headers=headers).json()["isAdmin"] is False
        assert client.get("/volunteer-assignments", headers=headers).status_code == 403
        assert client.get("/admin/reports", headers=headers).status_code == 403


class TestAdminAccounts:
    def test_seeding_needs_credentials(self, db) -> None:
        assert ensure_default_admin(db, None, "pw") is False
        assert ensure_default_admin(db, "root@example.com", "") is False
        assert db["user"].count_documents({}) == 0

    def test_seeding_runs_once(self, db) -> None:
        assert ensure_default_admin(db, "root@example.com", "pw123456") is True
        assert ensure_default_admin(db, "root@example.com", "changed") is False
        admin = db["user"].find_one({"email": "root@example.com"})
        assert admin["role"] == "admin"
        assert admin["name"] == "Administrator"
        assert db["user"].count_documents({}) == 1

    def test_admin_login(self, client: TestClient, admin_headers: dict) -> None:
        resp = client.post("/admin/login", json={"email": "admin@example.com", "password": "s3cret-pass"})
        assert resp.status_code == 200
        admin = resp.json()["admin"]
        assert admin["isAdmin"] is True
        assert admin["name"] == "Asha Admin"
        assert "password_hash" not in admin

    def test_admin_login_refuses_citizen(self, client: TestClient, user_headers: dict) -> None:
        resp = client.post("/admin/login", json={"email": "citizen@example.com", "password": "s3cret-pass"})
        assert resp.status_code == 403

    def test_admin_login_wrong_password(self, client: TestClient, admin_headers: dict) -> None:
        resp = client.post("/admin/login", json={"email": "admin@example.com", "password": "nope"})
        assert resp.status_code == 401


class TestAuthenticate:
    def test_admin_principal(self, client: TestClient, admin_headers: dict, db) -> None:
        principal = authenticate(db, admin_headers["Authorization"])
        assert principal.is_admin
        assert principal.display_name == "Asha Admin"

    def test_missing_credential(self, db) -> None:
        with pytest.raises(Unauthenticated):
            authenticate(db, None)

    def test_wrong_scheme(self, db) -> None:
        with pytest.raises(Unauthenticated):
            authenticate(db, "Basic " + create_token("x@example.com", "user"))

    def test_unknown_user(self, db) -> None:
        with pytest.raises(Unauthenticated):
            authenticate(db, "Bearer " + create_token("ghost@example.com", "admin"))

    def test_expired_token(self, client: TestClient, admin_headers: dict, db) -> None:
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = jwt.encode({"sub": "admin@example.com", "exp": past}, JWT_SECRET, algorithm=JWT_ALG)
        with pytest.raises(Unauthenticated):
            authenticate(db, f"Bearer {token}")

    def test_role_claim_is_not_trusted(self, client: TestClient, user_headers: dict, db) -> None:
        # admin status comes from the stored account, not the token
        principal = authenticate(db, "Bearer " + create_token("citizen@example.com", "admin"))
        assert not principal.is_admin

    def test_disabled_account(self, client: TestClient, user_headers: dict, db) -> None:
        db["user"].update_one({"email": "citizen@example.com"}, {"$set": {"is_active": False}})
        with pytest.raises(Forbidden):
            authenticate(db, user_headers["Authorization"])

    def test_principal_is_immutable(self, client: TestClient, user_headers: dict, db) -> None:
        principal = authenticate(db, user_headers["Authorization"])
        assert isinstance(principal, Principal)
        with pytest.raises(ModelError):
            principal.is_admin = True
        assert not principal.is_admin
