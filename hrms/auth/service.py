"""Auth service — credentials, one-time codes, JWT management, session lifecycle."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from jose import JWTError, jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import Admin, AuthSession
from hrms.auth.schemas import TokenPair
from hrms.auth.security import generate_otp, hash_password, hash_token, verify_password
from hrms.common.constants import EmployeeStatus, UserRole
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from hrms.common.models import as_utc
from hrms.config import settings
from hrms.core_hr.models import Employee
from hrms.organisation.models import Organisation

logger = logging.getLogger(__name__)

Account = Union[Admin, Employee]

_INVALID_OTP = {"otp": ["Invalid or expired code."]}


# ── JWT helpers ─────────────────────────────────────────────────────

def _create_access_token(
    principal_id: uuid.UUID,
    role: UserRole,
    organisation_id: Optional[uuid.UUID],
    name: str,
    email: Optional[str],
) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(principal_id),
        "role": role.value,
        "org": str(organisation_id) if organisation_id else None,
        "name": name,
        "email": email,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def _create_refresh_token(principal_id: uuid.UUID, role: UserRole) -> str:
    payload = {
        "sub": str(principal_id),
        "role": role.value,
        "type": "refresh",
        "jti": uuid.uuid4().hex,  # Unique ID — ensures each refresh token is distinct
        "exp": datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_EXPIRY_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ── Session management ──────────────────────────────────────────────

async def issue_session(
    db: AsyncSession,
    account: Account,
    role: UserRole,
    organisation_id: Optional[uuid.UUID],
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> TokenPair:
    """Create a JWT pair for *account* and persist the session."""
    access_token, expires_in = _create_access_token(
        account.id, role, organisation_id, account.name, account.email,
    )
    refresh_token = _create_refresh_token(account.id, role)

    db.add(
        AuthSession(
            principal_id=account.id,
            role=role.value,
            organisation_id=organisation_id,
            token_hash=hash_token(access_token),
            refresh_token_hash=hash_token(refresh_token),
            ip_address=ip,
            user_agent=user_agent,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
        )
    )
    account.last_login_at = datetime.now(timezone.utc)
    await db.flush()

    return TokenPair(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )


async def refresh_access_token(db: AsyncSession, refresh_token_str: str) -> TokenPair:
    """Validate refresh token, rotate it, and issue a new token pair.

    Each refresh token can only be used once. If a previously used (revoked)
    refresh token is presented, ALL sessions of that principal are revoked.
    """
    try:
        payload = jwt.decode(
            refresh_token_str,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise UnauthorizedException(detail="Invalid or expired refresh token.")

    if payload.get("type") != "refresh":
        raise UnauthorizedException(detail="Invalid token type.")

    result = await db.execute(
        select(AuthSession).where(
            AuthSession.refresh_token_hash == hash_token(refresh_token_str),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise UnauthorizedException(detail="Invalid refresh token.")

    if session.is_revoked:
        # Reuse of a consumed refresh token: revoke every session of the principal
        await revoke_all_sessions(db, session.principal_id, session.role)
        await db.commit()  # persist revocations before the error rolls back
        logger.warning(
            "Refresh token reuse detected for %s %s; all sessions revoked",
            session.role, session.principal_id,
        )
        raise ForbiddenException(
            detail="Refresh token reuse detected. All sessions revoked for security.",
        )

    session.is_revoked = True
    await db.flush()

    role = UserRole(session.role)
    account = await load_account(db, role, session.principal_id)
    if account is None:
        raise UnauthorizedException(detail="User account is inactive or not found.")

    return await issue_session(db, account, role, session.organisation_id)


async def revoke_all_sessions(db: AsyncSession, principal_id: uuid.UUID, role: str) -> None:
    """Revoke ALL active sessions of one principal."""
    result = await db.execute(
        select(AuthSession).where(
            AuthSession.principal_id == principal_id,
            AuthSession.role == role,
            AuthSession.is_revoked.is_(False),
        ),
    )
    for session in result.scalars().all():
        session.is_revoked = True
    await db.flush()


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its access token hash."""
    result = await db.execute(
        select(AuthSession).where(AuthSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


# ── Account lookup ──────────────────────────────────────────────────

async def load_account(
    db: AsyncSession,
    role: UserRole,
    principal_id: uuid.UUID,
) -> Optional[Account]:
    """Return the live admin / employee behind a token, or None."""
    if role == UserRole.admin:
        query = select(Admin).where(
            Admin.id == principal_id,
            Admin.active_flag.is_(True),
            Admin.delete_flag.is_(False),
        )
    else:
        query = select(Employee).where(
            Employee.id == principal_id,
            Employee.active_flag.is_(True),
            Employee.delete_flag.is_(False),
        )
    return (await db.execute(query)).scalars().first()


async def _find_account(
    db: AsyncSession,
    role: UserRole,
    email: Optional[str],
    mobile: Optional[str],
) -> Optional[Account]:
    model = Admin if role == UserRole.admin else Employee
    query = select(model).where(model.delete_flag.is_(False))
    if email:
        query = query.where(func.lower(model.email) == email.lower())
    else:
        query = query.where(model.mobile == mobile)
    return (await db.execute(query)).scalars().first()


async def admin_organisations(db: AsyncSession, admin_id: uuid.UUID) -> list[Organisation]:
    result = await db.execute(
        select(Organisation)
        .where(Organisation.admin_id == admin_id, Organisation.delete_flag.is_(False))
        .order_by(Organisation.created_at),
    )
    return list(result.scalars().all())


# ── One-time codes ──────────────────────────────────────────────────

def _set_otp(account: Account) -> str:
    otp = generate_otp()
    account.otp_hash = hash_token(otp)
    account.otp_expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.VERIFICATION_CODE_TTL_MINUTES,
    )
    return otp


def _consume_otp(account: Account, otp: str) -> bool:
    expires_at = as_utc(account.otp_expires_at)
    if (
        not account.otp_hash
        or account.otp_hash != hash_token(otp)
        or expires_at is None
        or expires_at < datetime.now(timezone.utc)
    ):
        return False
    account.otp_hash = None
    account.otp_expires_at = None
    return True


# ── Admin registration / verification ───────────────────────────────

async def register_admin(
    db: AsyncSession,
    *,
    email: str,
    full_name: str,
    password: str,
    mobile: Optional[str] = None,
    organisation_name: Optional[str] = None,
) -> tuple[Admin, Organisation, str]:
    """Create an unverified admin with its first organisation.

    Returns (admin, organisation, otp).
    """
    email = email.lower()
    if await _find_account(db, UserRole.admin, email, None):
        raise ConflictError("email", email)
    if mobile and await _find_account(db, UserRole.admin, None, mobile):
        raise ConflictError("mobile", mobile)

    admin = Admin(
        name=full_name,
        email=email,
        mobile=mobile,
        password_hash=hash_password(password),
        is_verified=False,
    )
    otp = _set_otp(admin)
    db.add(admin)
    await db.flush()

    organisation = Organisation(
        admin_id=admin.id,
        name=organisation_name or f"{full_name}'s Organisation",
        created_by=admin.id,
        modified_by=admin.id,
    )
    db.add(organisation)
    await db.flush()

    logger.info("Registered admin %s; verification code %s", email, otp)
    return admin, organisation, otp


async def verify_admin(db: AsyncSession, email: str, otp: str) -> Admin:
    admin = await _find_account(db, UserRole.admin, email, None)
    if admin is None or not _consume_otp(admin, otp):
        raise ValidationException(_INVALID_OTP, detail="Invalid or expired verification code.")
    admin.is_verified = True
    admin.modified_at = datetime.now(timezone.utc)
    await db.flush()
    return admin


# ── Login ───────────────────────────────────────────────────────────

async def authenticate_admin(
    db: AsyncSession,
    email: Optional[str],
    mobile: Optional[str],
    password: str,
) -> Admin:
    admin = await _find_account(db, UserRole.admin, email, mobile)
    if admin is None or not verify_password(password, admin.password_hash):
        logger.warning("Failed admin login for %s", email or mobile)
        raise UnauthorizedException(detail="Invalid credentials.")
    if not admin.active_flag:
        raise ForbiddenException(detail="Admin account is inactive.")
    if not admin.is_verified:
        raise ForbiddenException(detail="Email address has not been verified.")
    return admin


async def authenticate_employee(
    db: AsyncSession,
    email: Optional[str],
    mobile: Optional[str],
    password: str,
) -> Employee:
    employee = await _find_account(db, UserRole.employee, email, mobile)
    if employee is None or not verify_password(password, employee.password_hash):
        logger.warning("Failed employee login for %s", email or mobile)
        raise UnauthorizedException(detail="Invalid credentials.")
    if not employee.active_flag or employee.status in (
        EmployeeStatus.inactive.value,
        EmployeeStatus.terminated.value,
    ):
        raise ForbiddenException(detail="Employee account is inactive.")
    return employee


# ── Password reset ──────────────────────────────────────────────────

async def issue_reset_otp(
    db: AsyncSession,
    role: UserRole,
    email: Optional[str],
    mobile: Optional[str],
) -> Optional[str]:
    """Set a reset code on the account if it exists. Returns the code or None."""
    account = await _find_account(db, role, email, mobile)
    if account is None:
        logger.info("Password reset requested for unknown %s %s", role.value, email or mobile)
        return None
    otp = _set_otp(account)
    await db.flush()
    logger.info("Password reset code for %s %s: %s", role.value, account.email, otp)
    return otp


async def reset_password(
    db: AsyncSession,
    role: UserRole,
    email: Optional[str],
    mobile: Optional[str],
    otp: str,
    new_password: str,
) -> None:
    account = await _find_account(db, role, email, mobile)
    if account is None or not _consume_otp(account, otp):
        raise ValidationException(_INVALID_OTP, detail="Invalid or expired reset code.")
    account.password_hash = hash_password(new_password)
    account.modified_at = datetime.now(timezone.utc)
    await revoke_all_sessions(db, account.id, role.value)


async def change_password(
    db: AsyncSession,
    account: Account,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, account.password_hash):
        raise ValidationException(
            {"current_password": ["Current password is incorrect."]},
        )
    account.password_hash = hash_password(new_password)
    account.modified_at = datetime.now(timezone.utc)
    await db.flush()
