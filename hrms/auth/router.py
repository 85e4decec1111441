"""Auth router — admin registration / verification, admin and employee login,
password reset, token refresh, logout, profile and permissions."""


from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, get_current_principal, require_role
from hrms.auth.models import Admin
from hrms.auth.schemas import (
    AdminInfo,
    ChangePasswordRequest,
    EmployeeInfo,
    ForgotPasswordRequest,
    LoginRequest,
    OrganisationBrief,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyRequest,
)
from hrms.auth.service import (
    admin_organisations,
    authenticate_admin,
    authenticate_employee,
    change_password,
    issue_reset_otp,
    issue_session,
    load_account,
    refresh_access_token,
    register_admin,
    reset_password,
    revoke_session,
    verify_admin,
)
from hrms.common.audit import create_audit_entry
from hrms.common.constants import PERMISSIONS, UserRole
from hrms.common.exceptions import UnauthorizedException
from hrms.common.rate_limit import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from hrms.common.responses import envelope
from hrms.config import settings
from hrms.core_hr.models import Employee
from hrms.database import get_db
from hrms.organisation.models import Organisation

router = APIRouter(prefix="", tags=["auth"])

_FORGOT_MESSAGE = "If the account exists, a reset code has been sent."


def _client(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def _organisation_brief(organisation: Optional[Organisation]) -> Optional[dict[str, Any]]:
    if organisation is None:
        return None
    return OrganisationBrief.model_validate(organisation).model_dump(mode="json")


async def _admin_login_payload(db: AsyncSession, admin: Admin, request: Request) -> dict[str, Any]:
    organisations = await admin_organisations(db, admin.id)
    current = organisations[0] if organisations else None
    ip, user_agent = _client(request)
    tokens = await issue_session(
        db, admin, UserRole.admin, current.id if current else None, ip, user_agent,
    )
    await create_audit_entry(
        db,
        action="login",
        entity_type="auth_session",
        entity_id=admin.id,
        organisation_id=current.id if current else None,
        actor_id=admin.id,
        actor_role=UserRole.admin.value,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )
    return {
        "admin": AdminInfo.model_validate(admin).model_dump(mode="json"),
        "organisation": _organisation_brief(current),
        "organisations": [_organisation_brief(org) for org in organisations],
        **tokens.model_dump(),
    }


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


# ── POST /admin/register ────────────────────────────────────────────

@router.post("/admin/register", status_code=201)
@limiter.limit(REGISTER_LIMIT)
async def admin_register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an unverified admin and its first organisation; a code is issued."""
    admin, organisation, otp = await register_admin(
        db,
        email=body.email,
        full_name=body.full_name,
        password=body.password,
        mobile=body.mobile,
        organisation_name=body.organisation_name,
    )
    data: dict[str, Any] = {
        "admin": AdminInfo.model_validate(admin).model_dump(mode="json"),
        "organisation": _organisation_brief(organisation),
    }
    if not settings.is_production:
        data["otp"] = otp
    return envelope(data, "Registration successful. Verify your email with the code sent.")


# ── POST /admin/verify ──────────────────────────────────────────────

@router.post("/admin/verify")
@limiter.limit(LOGIN_LIMIT)
async def admin_verify(
    request: Request,
    body: VerifyRequest,
    db: AsyncSession = Depends(get_db),
):
    admin = await verify_admin(db, body.email.lower(), body.otp)
    payload = await _admin_login_payload(db, admin, request)
    return envelope(payload, "Email verified successfully.")


# ── POST /admin/login ───────────────────────────────────────────────

@router.post("/admin/login")
@limiter.limit(LOGIN_LIMIT)
async def admin_login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    admin = await authenticate_admin(
        db, body.email.lower() if body.email else None, body.mobile, body.password,
    )
    payload = await _admin_login_payload(db, admin, request)
    return envelope(payload, "Login successful.")


# ── POST /admin/forgot-password ─────────────────────────────────────

@router.post("/admin/forgot-password")
@limiter.limit(REGISTER_LIMIT)
async def admin_forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    otp = await issue_reset_otp(
        db, UserRole.admin, body.email.lower() if body.email else None, body.mobile,
    )
    data = {"otp": otp} if otp and not settings.is_production else None
    return envelope(data, _FORGOT_MESSAGE)


# ── POST /admin/reset-password ──────────────────────────────────────

@router.post("/admin/reset-password")
@limiter.limit(LOGIN_LIMIT)
async def admin_reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await reset_password(
        db, UserRole.admin, body.email.lower() if body.email else None, body.mobile,
        body.otp, body.new_password,
    )
    return envelope(None, "Password reset successfully. Please log in again.")


# ── GET /admin/permissions ──────────────────────────────────────────

@router.get("/admin/permissions")
async def admin_permissions(
    principal: Principal = Depends(require_role(UserRole.admin)),
):
    return envelope(PERMISSIONS[UserRole.admin], "Permissions fetched successfully.")


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


# ── POST /employee/login ────────────────────────────────────────────

@router.post("/employee/login")
@limiter.limit(LOGIN_LIMIT)
async def employee_login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    employee = await authenticate_employee(
        db, body.email.lower() if body.email else None, body.mobile, body.password,
    )
    organisation = await db.get(Organisation, employee.organisation_id)
    ip, user_agent = _client(request)
    tokens = await issue_session(
        db, employee, UserRole.employee, employee.organisation_id, ip, user_agent,
    )
    await create_audit_entry(
        db,
        action="login",
        entity_type="auth_session",
        entity_id=employee.id,
        organisation_id=employee.organisation_id,
        actor_id=employee.id,
        actor_role=UserRole.employee.value,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )
    payload = {
        "employee": EmployeeInfo.model_validate(employee).model_dump(mode="json"),
        "organisation": _organisation_brief(organisation),
        **tokens.model_dump(),
    }
    return envelope(payload, "Login successful.")


# ── POST /employee/forgot-password ──────────────────────────────────

@router.post("/employee/forgot-password")
@limiter.limit(REGISTER_LIMIT)
async def employee_forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    otp = await issue_reset_otp(
        db, UserRole.employee, body.email.lower() if body.email else None, body.mobile,
    )
    data = {"otp": otp} if otp and not settings.is_production else None
    return envelope(data, _FORGOT_MESSAGE)


# ── POST /employee/reset-password ───────────────────────────────────

@router.post("/employee/reset-password")
@limiter.limit(LOGIN_LIMIT)
async def employee_reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await reset_password(
        db, UserRole.employee, body.email.lower() if body.email else None, body.mobile,
        body.otp, body.new_password,
    )
    return envelope(None, "Password reset successfully. Please log in again.")


# ── GET /employee/permissions ───────────────────────────────────────

@router.get("/employee/permissions")
async def employee_permissions(
    principal: Principal = Depends(require_role(UserRole.employee)),
):
    return envelope(PERMISSIONS[UserRole.employee], "Permissions fetched successfully.")


# ═════════════════════════════════════════════════════════════════════
# Either role
# ═════════════════════════════════════════════════════════════════════


# ── POST /refresh ───────────────────────────────────────────────────

@router.post("/refresh")
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rotate the token pair; replaying a used refresh token revokes every session."""
    tokens = await refresh_access_token(db, body.refresh_token)
    return envelope(tokens.model_dump(), "Token refreshed successfully.")


# ── POST /logout ────────────────────────────────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, principal.token_hash)
    ip, user_agent = _client(request)
    await create_audit_entry(
        db,
        action="logout",
        entity_type="auth_session",
        entity_id=principal.id,
        organisation_id=principal.organisation_id,
        actor_id=principal.id,
        actor_role=principal.role.value,
        ip_address=ip,
        user_agent=user_agent,
    )
    return envelope(None, "Logged out successfully.")


# ── POST /change-password ───────────────────────────────────────────

@router.post("/change-password")
async def change_password_route(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    account = await load_account(db, principal.role, principal.id)
    if account is None:
        raise UnauthorizedException(detail="User account is inactive or not found.")
    await change_password(db, account, body.current_password, body.new_password)
    return envelope(None, "Password changed successfully.")


# ── GET /profile ────────────────────────────────────────────────────

@router.get("/profile")
async def profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    data = ProfileResponse(
        id=principal.id,
        role=principal.role.value,
        name=principal.name,
        email=principal.email,
        organisation_id=principal.organisation_id,
        permissions=PERMISSIONS[principal.role],
    ).model_dump(mode="json")
    if principal.role == UserRole.employee:
        employee = await db.get(Employee, principal.id)
        data["employee"] = EmployeeInfo.model_validate(employee).model_dump(mode="json")
    return envelope(data, "Profile fetched successfully.")
