# tests/test_auth.py: Registration, login, tokens
from datetime import timedelta

import pytest
from httpx import AsyncClient

from projecthub.utils.security import (
    create_access_token, create_refresh_token, decode_token, ACCESS, REFRESH,
)
from projecthub.errors import AuthenticationError

TEST_PASSWORD = "Password123!"


@pytest.mark.asyncio
class TestRegistration:
    async def test_register_success(self, client: AsyncClient, db_engine):
        res = await client.post("/auth/register", json={
            "email": "newuser@example.com",
            "password": "SecurePass123!",
            "first_name": "New",
            "last_name": "User",
        })
        assert res.status_code == 201
        data = res.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["timezone"] == "UTC"
        assert data["user"]["locale"] == "en"
        assert "password_hash" not in data["user"]

    async def test_register_duplicate_email(self, client: AsyncClient, test_user):
        res = await client.post("/auth/register", json={
            "email": test_user.email,
            "password": "SecurePass123!",
            "first_name": "Dupe",
            "last_name": "User",
        })
        assert res.status_code == 409
        assert res.json() == {"success": False, "error": f"User with email {test_user.email} already exists"}

    async def test_register_short_password(self, client: AsyncClient, db_engine):
        res = await client.post("/auth/register", json={
            "email": "weak@example.com",
            "password": "short",
            "first_name": "Weak",
            "last_name": "Password",
        })
        assert res.status_code == 400
        assert res.json()["success"] is False

    async def test_register_invalid_email(self, client: AsyncClient, db_engine):
        res = await client.post("/auth/register", json={
            "email": "not-an-email",
            "password": "SecurePass123!",
            "first_name": "Bad",
            "last_name": "Email",
        })
        assert res.status_code == 400


@pytest.mark.asyncio
class TestLogin:
    async def test_login_success(self, client: AsyncClient, test_user):
        res = await client.post("/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})
        assert res.status_code == 200
        data = res.json()
        assert data["user"]["id"] == test_user.id
        assert data["user"]["last_login_at"] is not None

    async def test_login_wrong_password(self, client: AsyncClient, test_user):
        res = await client.post("/auth/login", json={"email": test_user.email, "password": "WrongPassword!"})
        assert res.status_code == 401
        assert res.json()["error"] == "Invalid email or password"

    async def test_login_unknown_email(self, client: AsyncClient, db_engine):
        res = await client.post("/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert res.status_code == 401

    async def test_login_after_account_deleted(self, client: AsyncClient, test_user, auth_headers):
        res = await client.delete("/users/me", headers=auth_headers)
        assert res.status_code == 200
        res = await client.post("/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})
        assert res.status_code == 401

    async def test_email_free_after_account_deleted(self, client: AsyncClient, make_user, headers_for):
        user = await make_user(email="reuse@example.com")
        first_id = user.id
        res = await client.delete("/users/me", headers=headers_for(user))
        assert res.status_code == 200

        res = await client.post("/auth/register", json={
            "email": "reuse@example.com",
            "password": TEST_PASSWORD,
            "first_name": "Second",
            "last_name": "Owner",
        })
        assert res.status_code == 201
        assert res.json()["user"]["id"] != first_id


@pytest.mark.asyncio
class TestTokens:
    async def test_me_requires_token(self, client: AsyncClient, db_engine):
        res = await client.get("/auth/me")
        assert res.status_code == 401
        assert res.json()["success"] is False

    async def test_me_with_token(self, client: AsyncClient, test_user, auth_headers):
        res = await client.get("/auth/me", headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["email"] == test_user.email

    async def test_me_rejects_refresh_token(self, client: AsyncClient, test_user):
        token = create_refresh_token(test_user.id, test_user.email)
        res = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    async def test_me_rejects_expired_token(self, client: AsyncClient, test_user):
        token = create_access_token(test_user.id, test_user.email, expires_delta=timedelta(seconds=-5))
        res = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    async def test_me_rejects_garbage(self, client: AsyncClient, db_engine):
        res = await client.get("/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert res.status_code == 401

    async def test_refresh_issues_new_pair(self, client: AsyncClient, test_user):
        token = create_refresh_token(test_user.id, test_user.email)
        res = await client.post("/auth/refresh", json={"refresh_token": token})
        assert res.status_code == 200
        data = res.json()
        assert decode_token(data["access_token"], ACCESS)["sub"] == test_user.id
        assert decode_token(data["refresh_token"], REFRESH)["sub"] == test_user.id

    async def test_refresh_rejects_access_token(self, client: AsyncClient, test_user):
        token = create_access_token(test_user.id, test_user.email)
        res = await client.post("/auth/refresh", json={"refresh_token": token})
        assert res.status_code == 401


def test_token_claims():
    token = create_access_token("user-1", "a@example.com")
    claims = decode_token(token, ACCESS)
    assert claims["sub"] == "user-1"
    assert claims["email"] == "a@example.com"
    assert claims["type"] == ACCESS
    assert claims["exp"] - claims["iat"] == 15 * 60


def test_access_and_refresh_use_distinct_secrets():
    refresh = create_refresh_token("user-1", "a@example.com")
    with pytest.raises(AuthenticationError):
        decode_token(refresh, ACCESS)
