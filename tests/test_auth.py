"""
Tests for registration and login.

These tests verify:
  - The first registration becomes owner/approved, later ones user/pending
  - The login email is derived from the personal email's local part
  - Duplicate personal emails and colliding login emails are rejected (409)
  - The password policy is enforced and configurable (400)
  - Self-assigned admin is honoured only when policy allows it
  - Login: unknown email and wrong password give the same 401
  - Login: pending/denied accounts get a status-specific 403
  - The unknown-email dummy hash is computed off the event loop
  - Login returns a verifiable token whose role matches the stored role,
    and a user view without hash or reset fields
"""

import logging
import threading

import pytest

from conftest import (
    MEMBER_EMAIL,
    MEMBER_LOGIN,
    OWNER_EMAIL,
    OWNER_LOGIN,
    PASSWORD,
    auth_header,
    login,
    register,
)
from roster import security
from roster.config import settings
from roster.security import decode_access_token
from roster.services import auth_service


# ---------------------------------------------------------------------------
# Registration Tests
# ---------------------------------------------------------------------------

class TestRegister:
    """Tests for POST /register."""

    async def test_first_user_becomes_owner(self, client):
        response = await register(client, OWNER_EMAIL)
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "owner"
        assert data["status"] == "approved"
        assert data["login_email"] == OWNER_LOGIN
        assert "assigned as the owner" in data["message"]

    async def test_later_users_are_pending(self, client):
        await register(client, OWNER_EMAIL)
        response = await register(client, MEMBER_EMAIL)
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "user"
        assert data["status"] == "pending"
        assert "pending admin approval" in data["message"]

    async def test_first_user_is_owner_regardless_of_requested_role(self, client):
        response = await register(client, OWNER_EMAIL, role="pilot")
        assert response.json()["role"] == "owner"

    async def test_response_never_echoes_password_or_hash(self, client):
        response = await register(client, OWNER_EMAIL)
        body = response.text
        assert PASSWORD not in body
        assert "argon2" not in body
        assert "hashed_password" not in body

    async def test_login_email_is_derived_and_lowercased(self, client):
        response = await register(client, "Jane.Doe@Gmail.com")
        assert response.json()["login_email"] == "jane.doe@sq23rd.com"

    async def test_default_name(self, client, owner_token):
        await client.post(
            "/register", json={"email": MEMBER_EMAIL, "password": PASSWORD}
        )
        response = await client.get("/users", headers=auth_header(owner_token))
        member = next(u for u in response.json()["users"] if u["login_email"] == MEMBER_LOGIN)
        assert member["name"] == "New User"

    async def test_duplicate_personal_email(self, client):
        await register(client, OWNER_EMAIL)
        response = await register(client, OWNER_EMAIL)
        assert response.status_code == 409
        assert response.json()["message"] == "User already exists."

    async def test_duplicate_personal_email_is_case_insensitive(self, client):
        await register(client, OWNER_EMAIL)
        response = await register(client, OWNER_EMAIL.upper())
        assert response.status_code == 409

    async def test_colliding_login_email(self, client):
        """Two personal emails with the same local part would share a login email."""
        await register(client, "sam@example.com")
        response = await register(client, "sam@another.org")
        assert response.status_code == 409
        assert "sam@sq23rd.com" in response.json()["message"]

    @pytest.mark.parametrize(
        "password, reason",
        [
            ("Ab1", "at least 8 characters"),
            ("abcdefgh", "contain a number"),
            ("12345678", "contain a letter"),
        ],
    )
    async def test_password_policy(self, client, password, reason):
        response = await register(client, OWNER_EMAIL, password=password)
        assert response.status_code == 400
        assert reason in response.json()["message"]

    async def test_password_policy_is_configurable(self, client, monkeypatch):
        monkeypatch.setattr(settings, "PASSWORD_MIN_LENGTH", 12)
        response = await register(client, OWNER_EMAIL, password="Password123")
        assert response.status_code == 400
        response = await register(client, OWNER_EMAIL, password="Password12345")
        assert response.status_code == 201

    async def test_invalid_email_format(self, client):
        response = await register(client, "not-an-email")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request."

    async def test_missing_fields(self, client):
        response = await client.post("/register", json={"email": OWNER_EMAIL})
        assert response.status_code == 400

    async def test_admin_request_ignored_by_default(self, client):
        await register(client, OWNER_EMAIL)
        response = await register(client, MEMBER_EMAIL, role="admin")
        assert response.json()["role"] == "user"

    async def test_admin_request_honoured_when_allowed(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ALLOW_SELF_ASSIGNED_ADMIN", True)
        await register(client, OWNER_EMAIL)
        response = await register(client, MEMBER_EMAIL, userType="admin")
        data = response.json()
        assert data["role"] == "admin"
        assert data["status"] == "pending"
        assert "admin" in data["message"]

    async def test_password_not_logged(self, client, caplog):
        caplog.set_level(logging.DEBUG)
        await register(client, OWNER_EMAIL)
        await login(client, OWNER_LOGIN)
        assert PASSWORD not in caplog.text


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /login."""

    async def test_login_success(self, client):
        await register(client, OWNER_EMAIL)
        response = await login(client, OWNER_LOGIN)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful."
        assert data["token_type"] == "bearer"
        assert data["user"]["login_email"] == OWNER_LOGIN
        assert data["user"]["role"] == "owner"

    async def test_token_role_matches_stored_role(self, client):
        await register(client, OWNER_EMAIL)
        data = (await login(client, OWNER_LOGIN)).json()
        claims = decode_access_token(data["token"])
        assert claims.role == "owner"
        assert claims.subject == data["user"]["id"]

    async def test_user_view_is_sanitized(self, client):
        await register(client, OWNER_EMAIL)
        user = (await login(client, OWNER_LOGIN)).json()["user"]
        assert set(user) == {
            "id", "personal_email", "login_email", "name", "role", "status", "created_at",
        }

    async def test_login_with_personal_email_fails(self, client):
        """Login is by the derived login email only."""
        await register(client, OWNER_EMAIL)
        response = await login(client, OWNER_EMAIL)
        assert response.status_code == 401

    async def test_wrong_password_and_unknown_email_are_indistinguishable(self, client):
        await register(client, OWNER_EMAIL)
        wrong_password = await login(client, OWNER_LOGIN, password="WrongPass999")
        unknown_email = await login(client, "nobody@sq23rd.com")
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["message"] == "Invalid email or password."

    async def test_pending_account_gets_status_message(self, client):
        await register(client, OWNER_EMAIL)
        await register(client, MEMBER_EMAIL)
        response = await login(client, MEMBER_LOGIN)
        assert response.status_code == 403
        assert response.json()["message"] == "Your account is pending admin approval."

    async def test_pending_account_with_wrong_password_gets_generic_error(self, client):
        await register(client, OWNER_EMAIL)
        await register(client, MEMBER_EMAIL)
        response = await login(client, MEMBER_LOGIN, password="WrongPass999")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password."

    async def test_denied_account_gets_status_message(self, client, owner_token):
        await register(client, MEMBER_EMAIL)
        await client.put(f"/users/{MEMBER_EMAIL}/deny", headers=auth_header(owner_token))
        response = await login(client, MEMBER_LOGIN)
        assert response.status_code == 403
        assert response.json()["message"] == "Your account has been denied."

    async def test_approved_member_can_log_in(self, client, member_token):
        claims = decode_access_token(member_token)
        assert claims.role == "user"

    async def test_token_works_for_protected_endpoint(self, client, owner_token):
        response = await client.get("/users/me", headers=auth_header(owner_token))
        assert response.status_code == 200
        assert response.json()["login_email"] == OWNER_LOGIN

    async def test_unknown_email_hashing_stays_off_the_event_loop(self, client, monkeypatch):
        """The dummy hash for unknown emails is built once, in a worker thread."""
        calls = []
        real_hash = security.hash_password

        def recording_hash(plain_password):
            calls.append(threading.get_ident())
            return real_hash(plain_password)

        monkeypatch.setattr(security, "hash_password", recording_hash)
        monkeypatch.setattr(auth_service, "_dummy_hash", None)

        for _ in range(2):
            response = await login(client, "nobody@sq23rd.com")
            assert response.status_code == 401

        assert len(calls) == 1
        assert calls[0] != threading.get_ident()
