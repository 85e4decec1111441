"""Pagination, sorting and list-request bodies shared by every ``/list`` action."""


import math
import uuid
from typing import Any, ClassVar, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


# ── Request bodies ──────────────────────────────────────────────────

class SortSpec(BaseModel):
    """``{"field": "name", "order": "asc"}``."""

    field: str
    order: Literal["asc", "desc"] = "asc"


class ListRequest(BaseModel):
    """Body of every ``POST /<resource>/list`` call.

    Resources subclass this to add their own typed filters; any field that
    is not one of the base fields below is treated as an equality filter
    (or a suffixed filter, see ``hrms.common.filters.apply_filters``).
    """

    model_config = ConfigDict(use_enum_values=True)

    organisation_id: Optional[uuid.UUID] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    search: Optional[str] = None
    sort: Optional[SortSpec] = None
    include: list[str] = Field(default_factory=list)
    active_flag: Optional[bool] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    # Request field → filter key, e.g. {"date_from": "date__from"}
    filter_aliases: ClassVar[dict[str, str]] = {}

    def filters(self) -> dict[str, Any]:
        """Return only the resource-specific filter fields."""
        base = set(ListRequest.model_fields)
        return {
            self.filter_aliases.get(name, name): value
            for name, value in self.model_dump(exclude=base - {"active_flag"}).items()
            if value is not None
        }


class OneRequest(BaseModel):
    """Body of ``POST /<resource>/one``."""

    id: uuid.UUID
    organisation_id: Optional[uuid.UUID] = None
    include: list[str] = Field(default_factory=list)


class DeleteRequest(BaseModel):
    """Body of ``PATCH /<resource>/delete``."""

    id: uuid.UUID
    organisation_id: Optional[uuid.UUID] = None


# ── Response metadata ───────────────────────────────────────────────

class PageInfo(BaseModel):
    """Metadata block embedded in every list response."""

    page: int
    page_size: int
    total_count: int
    page_count: int


# ── SQLAlchemy helper ───────────────────────────────────────────────

async def paginate(
    session: AsyncSession,
    query: Select,
    *,
    page: int,
    page_size: int,
    options: Sequence[Any] = (),
) -> tuple[Sequence[Any], PageInfo]:
    """
    Execute *query* with LIMIT/OFFSET and return ``(rows, page_info)``.

    Sorting must already be applied to *query*; the count query strips it.
    Loader *options* (``selectinload`` etc.) are applied to the row query only.
    """
    count_q = query.with_only_columns(func.count(), maintain_column_froms=True).order_by(None)
    total: int = (await session.execute(count_q)).scalar_one()

    rows = (
        await session.execute(
            query.options(*options).offset((page - 1) * page_size).limit(page_size)
        )
    ).scalars().all()

    return rows, PageInfo(
        page=page,
        page_size=page_size,
        total_count=total,
        page_count=math.ceil(total / page_size) if total else 0,
    )
