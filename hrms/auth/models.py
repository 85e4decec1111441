"""Auth ORM models: Admin, AuthSession."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import FlagsMixin, utcnow
from hrms.database import Base


class Admin(Base, FlagsMixin):
    """Account that owns one or more organisations."""

    __tablename__ = "admins"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    mobile: Mapped[Optional[str]] = mapped_column(sa.String(20), unique=True)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    is_verified: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    otp_hash: Mapped[Optional[str]] = mapped_column(sa.String(128))
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    last_login_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # Relationships
    organisations: Mapped[list["Organisation"]] = relationship(
        back_populates="admin",
        order_by="Organisation.created_at",
    )

    def __repr__(self) -> str:
        return f"<Admin {self.email!r}>"


class AuthSession(Base):
    """One issued access/refresh token pair, stored by SHA-256 hash."""

    __tablename__ = "auth_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Admin or Employee id, depending on role
    principal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    organisation_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    token_hash: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(sa.String(128))
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    user_agent: Mapped[Optional[str]] = mapped_column(sa.Text)
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    is_revoked: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        sa.Index("ix_auth_sessions_token_hash", "token_hash"),
        sa.Index("ix_auth_sessions_refresh_token_hash", "refresh_token_hash"),
        sa.Index("ix_auth_sessions_principal", "principal_id", "role"),
    )
