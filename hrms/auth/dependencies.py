"""Auth dependencies — JWT validation, RBAC enforcement, organisation scoping."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import AuthSession
from hrms.auth.security import hash_token
from hrms.auth.service import load_account
from hrms.common.constants import PERMISSIONS, UserRole
from hrms.common.exceptions import ForbiddenException, NotFoundException, ValidationException
from hrms.config import settings
from hrms.database import get_db
from hrms.organisation.models import Organisation

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    """The authenticated caller: an admin or an employee."""

    id: uuid.UUID
    role: UserRole
    name: str
    email: Optional[str]
    organisation_id: Optional[uuid.UUID]
    token_hash: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Validate JWT, verify the persisted session, return the caller."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    # Session must exist, not be revoked, not be expired
    token_hash = hash_token(token)
    result = await db.execute(
        select(AuthSession).where(
            AuthSession.token_hash == token_hash,
            AuthSession.is_revoked.is_(False),
            AuthSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise HTTPException(status_code=401, detail="Session invalid or expired.")

    try:
        role = UserRole(session.role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    account = await load_account(db, role, session.principal_id)
    if account is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    principal = Principal(
        id=account.id,
        role=role,
        name=account.name,
        email=account.email,
        organisation_id=session.organisation_id,
        token_hash=token_hash,
    )
    request.state.user_role = role
    request.state.principal = principal
    return principal


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{principal.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return principal

    return _check


# ── Permission-based dependency ─────────────────────────────────────

def has_permission(role: UserRole, resource: str, action: str) -> bool:
    return action in PERMISSIONS.get(role, {}).get(resource, [])


def require_permission(resource: str, action: str) -> Callable:
    """Return a FastAPI dependency that enforces ``resource``/``action`` for the role."""

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, resource, action):
            raise ForbiddenException(
                detail=f"Role '{principal.role.value}' may not '{action}' {resource}.",
            )
        return principal

    return _check


# ── Organisation scoping ────────────────────────────────────────────

async def resolve_organisation(
    db: AsyncSession,
    principal: Principal,
    requested: Optional[uuid.UUID] = None,
) -> uuid.UUID:
    """Return the organisation a request operates on.

    Employees are pinned to their own organisation. Admins default to the
    organisation in their token and may target any other organisation they
    own by passing ``organisation_id``. A soft-deleted organisation is
    never a valid target.
    """
    if requested is None or requested == principal.organisation_id:
        if principal.organisation_id is None:
            raise ValidationException(
                {"organisation_id": ["An organisation must be selected."]},
            )
        own = await db.execute(
            select(Organisation.id).where(
                Organisation.id == principal.organisation_id,
                Organisation.delete_flag.is_(False),
            ),
        )
        if own.scalar_one_or_none() is None:
            raise NotFoundException("Organisation", principal.organisation_id)
        return principal.organisation_id

    if principal.is_admin:
        result = await db.execute(
            select(Organisation.id).where(
                Organisation.id == requested,
                Organisation.admin_id == principal.id,
                Organisation.delete_flag.is_(False),
            ),
        )
        if result.scalar_one_or_none() is not None:
            return requested

    logger.warning(
        "%s %s attempted to access organisation %s",
        principal.role.value, principal.id, requested,
    )
    raise ForbiddenException(detail="You do not have access to this organisation.")
