"""Tests for the auth module — registration, login, sessions, passwords.

Covers:
  - Admin registration + email verification with the one-time code
  - Admin / employee login by email or mobile
  - Session checks: missing, revoked and rotated tokens
  - Refresh-token rotation and reuse detection
  - Forgot / reset / change password
  - Role-specific permission endpoints and the profile
"""

from __future__ import annotations

from sqlalchemy import select

from hrms.auth.models import Admin, AuthSession
from hrms.common.audit import AuditTrail
from hrms.common.constants import UserRole
from hrms.core_hr.models import Employee
from tests.conftest import (
    ADMIN_PASSWORD,
    EMPLOYEE_PASSWORD,
    TestSessionFactory,
    _make_employee,
    bearer_for,
    insert,
)

AUTH = "/api/v1/auth"


async def _register(client, email: str = "founder@acme.io", **extra):
    body = {
        "email": email,
        "full_name": "Farah Founder",
        "password": "founder-pass-123",
        **extra,
    }
    return await client.post(f"{AUTH}/admin/register", json=body)


async def _admin_login(client, email: str = "owner@acme.io", password: str = ADMIN_PASSWORD):
    return await client.post(f"{AUTH}/admin/login", json={"email": email, "password": password})


# ═════════════════════════════════════════════════════════════════════
# 1. Registration & verification
# ═════════════════════════════════════════════════════════════════════


class TestRegistration:
    async def test_register_creates_unverified_admin_and_organisation(self, client):
        resp = await _register(client, organisation_name="Founders Inc")
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] is True
        assert body["data"]["admin"]["email"] == "founder@acme.io"
        assert body["data"]["admin"]["is_verified"] is False
        assert body["data"]["organisation"]["name"] == "Founders Inc"
        # Code is echoed outside production
        assert len(body["data"]["otp"]) == 6

    async def test_register_normalises_email_case(self, client):
        resp = await _register(client, email="Founder@ACME.io")
        assert resp.status_code == 201
        assert resp.json()["data"]["admin"]["email"] == "founder@acme.io"

    async def test_duplicate_email_conflicts(self, client):
        await _register(client)
        resp = await _register(client, email="FOUNDER@acme.io")
        assert resp.status_code == 409
        assert resp.json()["status"] is False
        assert "email" in resp.json()["errors"]

    async def test_short_password_rejected(self, client):
        resp = await client.post(
            f"{AUTH}/admin/register",
            json={"email": "a@acme.io", "full_name": "A", "password": "short"},
        )
        assert resp.status_code == 422
        assert "password" in resp.json()["errors"]

    async def test_login_before_verification_forbidden(self, client):
        await _register(client)
        resp = await _admin_login(client, "founder@acme.io", "founder-pass-123")
        assert resp.status_code == 403

    async def test_verify_then_login(self, client):
        otp = (await _register(client)).json()["data"]["otp"]

        resp = await client.post(f"{AUTH}/admin/verify", json={"email": "founder@acme.io", "otp": otp})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["admin"]["is_verified"] is True
        assert data["access_token"]

        resp = await _admin_login(client, "founder@acme.io", "founder-pass-123")
        assert resp.status_code == 200

    async def test_verify_wrong_code(self, client):
        await _register(client)
        resp = await client.post(f"{AUTH}/admin/verify", json={"email": "founder@acme.io", "otp": "000000x"})
        assert resp.status_code == 422
        assert "otp" in resp.json()["errors"]

    async def test_code_is_single_use(self, client):
        otp = (await _register(client)).json()["data"]["otp"]
        first = await client.post(f"{AUTH}/admin/verify", json={"email": "founder@acme.io", "otp": otp})
        second = await client.post(f"{AUTH}/admin/verify", json={"email": "founder@acme.io", "otp": otp})
        assert first.status_code == 200
        assert second.status_code == 422


# ═════════════════════════════════════════════════════════════════════
# 2. Login
# ═════════════════════════════════════════════════════════════════════


class TestAdminLogin:
    async def test_login_returns_tokens_and_organisations(self, client, test_admin, test_org):
        resp = await _admin_login(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful."
        data = body["data"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert data["organisation"]["id"] == str(test_org["id"])
        assert [o["id"] for o in data["organisations"]] == [str(test_org["id"])]

    async def test_wrong_password(self, client, test_admin):
        resp = await _admin_login(client, password="not-the-password")
        assert resp.status_code == 401
        assert resp.json()["status"] is False
        assert resp.json()["message"] == "Invalid credentials."

    async def test_unknown_email(self, client):
        resp = await _admin_login(client, email="nobody@acme.io")
        assert resp.status_code == 401

    async def test_email_or_mobile_required(self, client):
        resp = await client.post(f"{AUTH}/admin/login", json={"password": "x"})
        assert resp.status_code == 422

    async def test_login_writes_session_and_audit(self, client, test_admin, test_org):
        await _admin_login(client)
        async with TestSessionFactory() as session:
            sessions = (await session.execute(select(AuthSession))).scalars().all()
            audits = (
                await session.execute(select(AuditTrail).where(AuditTrail.action == "login"))
            ).scalars().all()
        assert len(sessions) == 1
        assert sessions[0].role == "admin"
        assert sessions[0].organisation_id == test_org["id"]
        assert len(audits) == 1

    async def test_login_rate_limited(self, client, test_admin):
        responses = [await _admin_login(client, password="wrong-password") for _ in range(11)]
        assert [r.status_code for r in responses[:10]] == [401] * 10
        limited = responses[10]
        assert limited.status_code == 429
        body = limited.json()
        assert body["status"] is False
        assert body["data"] is None
        assert body["error"]["title"] == "Too Many Requests"
        assert body["error"]["instance"] == f"{AUTH}/admin/login"
        assert "10 per 1 minute" in body["message"]


class TestEmployeeLogin:
    async def test_login_by_email(self, client, test_employee, test_org):
        resp = await client.post(
            f"{AUTH}/employee/login",
            json={"email": test_employee["email"], "password": EMPLOYEE_PASSWORD},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["employee"]["id"] == str(test_employee["id"])
        assert data["organisation"]["id"] == str(test_org["id"])
        assert data["access_token"]

    async def test_login_by_mobile(self, client, test_employee):
        resp = await client.post(
            f"{AUTH}/employee/login",
            json={"mobile": test_employee["mobile"], "password": EMPLOYEE_PASSWORD},
        )
        assert resp.status_code == 200

    async def test_terminated_employee_forbidden(self, client, db, test_org):
        data = _make_employee(test_org["id"], email="gone@acme.io", status="terminated")
        await insert(db, Employee, data)
        resp = await client.post(
            f"{AUTH}/employee/login",
            json={"email": "gone@acme.io", "password": EMPLOYEE_PASSWORD},
        )
        assert resp.status_code == 403

    async def test_admin_credentials_do_not_log_in_as_employee(self, client, test_admin):
        resp = await client.post(
            f"{AUTH}/employee/login",
            json={"email": "owner@acme.io", "password": ADMIN_PASSWORD},
        )
        assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# 3. Sessions, refresh & logout
# ═════════════════════════════════════════════════════════════════════


class TestSessions:
    async def test_missing_token(self, client):
        resp = await client.get(f"{AUTH}/profile")
        assert resp.status_code == 401
        body = resp.json()
        assert body["status"] is False
        assert body["data"] is None

    async def test_garbage_token(self, client):
        resp = await client.get(f"{AUTH}/profile", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token."

    async def test_refresh_token_cannot_be_used_as_access_token(self, client, test_admin, test_org):
        tokens = (await _admin_login(client)).json()["data"]
        resp = await client.get(
            f"{AUTH}/profile", headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
        )
        assert resp.status_code == 401

    async def test_logout_revokes_session(self, client, admin_headers):
        assert (await client.get(f"{AUTH}/profile", headers=admin_headers)).status_code == 200
        resp = await client.post(f"{AUTH}/logout", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out successfully."
        assert (await client.get(f"{AUTH}/profile", headers=admin_headers)).status_code == 401

    async def test_refresh_rotates_tokens(self, client, test_admin, test_org):
        tokens = (await _admin_login(client)).json()["data"]

        resp = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 200
        fresh = resp.json()["data"]
        assert fresh["access_token"] != tokens["access_token"]
        assert fresh["refresh_token"] != tokens["refresh_token"]

        # The new session keeps the organisation of the old one
        profile = await client.get(
            f"{AUTH}/profile", headers={"Authorization": f"Bearer {fresh['access_token']}"},
        )
        assert profile.status_code == 200
        assert profile.json()["data"]["organisation_id"] == str(test_org["id"])

    async def test_refresh_reuse_revokes_everything(self, client, test_admin, test_org):
        tokens = (await _admin_login(client)).json()["data"]
        fresh = (
            await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        ).json()["data"]

        replay = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert replay.status_code == 403

        resp = await client.get(
            f"{AUTH}/profile", headers={"Authorization": f"Bearer {fresh['access_token']}"},
        )
        assert resp.status_code == 401

    async def test_refresh_with_garbage(self, client):
        resp = await client.post(f"{AUTH}/refresh", json={"refresh_token": "nope"})
        assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# 4. Passwords
# ═════════════════════════════════════════════════════════════════════


class TestPasswords:
    async def test_forgot_and_reset_admin_password(self, client, test_admin, test_org):
        resp = await client.post(f"{AUTH}/admin/forgot-password", json={"email": "owner@acme.io"})
        assert resp.status_code == 200
        otp = resp.json()["data"]["otp"]

        resp = await client.post(
            f"{AUTH}/admin/reset-password",
            json={"email": "owner@acme.io", "otp": otp, "new_password": "brand-new-pass-1"},
        )
        assert resp.status_code == 200

        assert (await _admin_login(client)).status_code == 401
        assert (await _admin_login(client, password="brand-new-pass-1")).status_code == 200

    async def test_forgot_unknown_account_reveals_nothing(self, client):
        resp = await client.post(f"{AUTH}/admin/forgot-password", json={"email": "ghost@acme.io"})
        assert resp.status_code == 200
        assert resp.json()["data"] is None
        assert resp.json()["message"] == "If the account exists, a reset code has been sent."

    async def test_reset_with_wrong_code(self, client, test_employee):
        await client.post(f"{AUTH}/employee/forgot-password", json={"email": test_employee["email"]})
        resp = await client.post(
            f"{AUTH}/employee/reset-password",
            json={"email": test_employee["email"], "otp": "999999x", "new_password": "whatever-123"},
        )
        assert resp.status_code == 422

    async def test_reset_revokes_existing_sessions(self, client, employee_headers, test_employee):
        otp = (
            await client.post(f"{AUTH}/employee/forgot-password", json={"mobile": test_employee["mobile"]})
        ).json()["data"]["otp"]
        await client.post(
            f"{AUTH}/employee/reset-password",
            json={"mobile": test_employee["mobile"], "otp": otp, "new_password": "fresh-pass-123"},
        )
        assert (await client.get(f"{AUTH}/profile", headers=employee_headers)).status_code == 401

    async def test_change_password(self, client, admin_headers):
        wrong = await client.post(
            f"{AUTH}/change-password",
            headers=admin_headers,
            json={"current_password": "nope", "new_password": "another-pass-1"},
        )
        assert wrong.status_code == 422
        assert "current_password" in wrong.json()["errors"]

        ok = await client.post(
            f"{AUTH}/change-password",
            headers=admin_headers,
            json={"current_password": ADMIN_PASSWORD, "new_password": "another-pass-1"},
        )
        assert ok.status_code == 200
        assert (await _admin_login(client, password="another-pass-1")).status_code == 200


# ═════════════════════════════════════════════════════════════════════
# 5. Profile & permissions
# ═════════════════════════════════════════════════════════════════════


class TestProfileAndPermissions:
    async def test_admin_profile(self, client, admin_headers, test_admin, test_org):
        resp = await client.get(f"{AUTH}/profile", headers=admin_headers)
        data = resp.json()["data"]
        assert data["id"] == str(test_admin["id"])
        assert data["role"] == "admin"
        assert data["organisation_id"] == str(test_org["id"])
        assert "employees" in data["permissions"]
        assert "employee" not in data

    async def test_employee_profile_includes_employee(self, client, employee_headers, test_employee):
        data = (await client.get(f"{AUTH}/profile", headers=employee_headers)).json()["data"]
        assert data["role"] == "employee"
        assert data["employee"]["code"] == test_employee["code"]
        assert "organisations" not in data["permissions"]

    async def test_admin_permissions(self, client, admin_headers):
        resp = await client.get(f"{AUTH}/admin/permissions", headers=admin_headers)
        assert resp.status_code == 200
        assert "delete" in resp.json()["data"]["employees"]

    async def test_employee_permissions(self, client, employee_headers):
        resp = await client.get(f"{AUTH}/employee/permissions", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["employees"] == ["list", "one"]

    async def test_employee_cannot_read_admin_permissions(self, client, employee_headers):
        resp = await client.get(f"{AUTH}/admin/permissions", headers=employee_headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["type"] == "forbidden"

    async def test_deactivated_admin_token_rejected(self, client, admin_headers, test_admin):
        async with TestSessionFactory() as session:
            admin = await session.get(Admin, test_admin["id"])
            admin.active_flag = False
            await session.commit()
        resp = await client.get(f"{AUTH}/profile", headers=admin_headers)
        assert resp.status_code == 401

    async def test_deleted_employee_token_rejected(self, client, db, test_org):
        data = _make_employee(test_org["id"], email="short.lived@acme.io")
        employee = await insert(db, Employee, data)
        headers = await bearer_for(db, Employee, employee.id, UserRole.employee, test_org["id"])
        employee.delete_flag = True
        await db.commit()
        resp = await client.get(f"{AUTH}/profile", headers=headers)
        assert resp.status_code == 401
