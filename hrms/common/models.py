"""Column mixins shared by every tenant-scoped table."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FlagsMixin:
    """
    ``id``, the ``active_flag`` / ``delete_flag`` pair and audit columns::

        class Organisation(Base, FlagsMixin):
            ...

    Soft delete sets ``delete_flag`` and clears ``active_flag``; rows with
    ``delete_flag`` set are invisible to every read path.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    active_flag: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    delete_flag: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow,
    )
    modified_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    modified_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))


class OrgScopedMixin(FlagsMixin):
    """FlagsMixin plus the owning ``organisation_id``."""

    organisation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("organisations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
