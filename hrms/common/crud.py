"""Generic organisation-scoped CRUD service.

Every resource in the action-style API (``create`` / ``update`` / ``list`` /
``one`` / ``delete``) is a subclass of :class:`CrudService` that declares its
model, response schema, searchable columns, per-organisation unique fields,
foreign keys to verify and the relations that may be ``include``-d.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - ``apply_filters / apply_search / apply_sorting`` from hrms.common.filters
  - ``create_audit_entry`` from hrms.common.audit
  - ``NotFoundException / ConflictError / ValidationException`` from hrms.common.exceptions
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import ConflictError, NotFoundException, ValidationException
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import ListRequest, PageInfo, paginate
from hrms.common.responses import column_values

if TYPE_CHECKING:
    from hrms.auth.dependencies import Principal

logger = logging.getLogger(__name__)


def _is_live(row: Any) -> bool:
    return not getattr(row, "delete_flag", False)


class CrudService:
    """Async CRUD for one org-scoped model. Subclass and set the class attributes."""

    model: ClassVar[Any]
    entity_name: ClassVar[str]
    entity_type: ClassVar[str]
    out_schema: ClassVar[type[BaseModel]]

    search_columns: ClassVar[Sequence[str]] = ("name",)
    # Unique among live rows of one organisation
    unique_fields: ClassVar[Sequence[str]] = ()
    # Unique among live rows of every organisation
    global_unique_fields: ClassVar[Sequence[str]] = ()
    # FK column → model that must hold a live row in the same organisation
    references: ClassVar[dict[str, Any]] = {}
    # relationship name → schema used to render it
    includes: ClassVar[dict[str, type[BaseModel]]] = {}
    # Column holding the employee a row belongs to; employees only see their own rows
    owner_field: ClassVar[Optional[str]] = None
    default_sort: ClassVar[str] = "-created_at"
    # Columns never written to the audit trail
    audit_exclude: ClassVar[frozenset[str]] = frozenset({"password_hash", "otp_hash"})

    # ── Queries ─────────────────────────────────────────────────────

    @classmethod
    def base_query(cls, organisation_id: uuid.UUID, principal: Optional["Principal"] = None) -> Select:
        query = select(cls.model).where(
            cls.model.organisation_id == organisation_id,
            cls.model.delete_flag.is_(False),
        )
        if principal is not None and not principal.is_admin and cls.owner_field:
            query = query.where(getattr(cls.model, cls.owner_field) == principal.id)
        return query

    @classmethod
    def load_options(cls, include: Iterable[str]) -> list:
        """Translate ``include`` names into ``selectinload`` options (422 on unknown)."""
        options = []
        unknown = []
        for name in include:
            if name not in cls.includes:
                unknown.append(name)
                continue
            options.append(selectinload(getattr(cls.model, name)))
        if unknown:
            raise ValidationException(
                {"include": [f"Unknown relation '{name}'." for name in unknown]},
            )
        return options

    @classmethod
    def apply_list_filters(cls, query: Select, req: ListRequest) -> Select:
        """Hook for filters that are not plain column comparisons."""
        return apply_filters(query, cls.model, req.filters())

    @classmethod
    async def list_rows(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal: Optional["Principal"],
        req: ListRequest,
    ) -> tuple[Sequence[Any], PageInfo]:
        """Return a page of live rows matching *req*."""
        options = cls.load_options(req.include)
        query = cls.base_query(organisation_id, principal)
        query = cls.apply_list_filters(query, req)
        query = apply_search(query, cls.model, req.search, cls.search_columns)
        query = apply_sorting(query, cls.model, req.sort, default=cls.default_sort)
        return await paginate(
            db, query, page=req.page, page_size=req.page_size, options=options,
        )

    @classmethod
    async def get(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal: Optional["Principal"],
        obj_id: uuid.UUID,
        include: Iterable[str] = (),
    ) -> Any:
        query = cls.base_query(organisation_id, principal).where(cls.model.id == obj_id)
        options = cls.load_options(include)
        if options:
            query = query.options(*options).execution_options(populate_existing=True)
        obj = (await db.execute(query)).scalars().first()
        if obj is None:
            raise NotFoundException(cls.entity_name, obj_id)
        return obj

    # ── Writes ──────────────────────────────────────────────────────

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal: Optional["Principal"],
        values: dict[str, Any],
    ) -> Any:
        """Validate and insert a new row."""
        values = dict(values)
        values.pop("organisation_id", None)
        if principal is not None and not principal.is_admin and cls.owner_field:
            values[cls.owner_field] = principal.id

        await cls.before_create(db, organisation_id, principal, values)
        cls._check_not_null(values)
        await cls._check_references(db, organisation_id, values)
        await cls._check_unique(db, organisation_id, values)
        await cls.validate(db, organisation_id, values, None)

        actor_id = principal.id if principal else None
        obj = cls.model(
            **values,
            organisation_id=organisation_id,
            created_by=actor_id,
            modified_by=actor_id,
        )
        db.add(obj)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type=cls.entity_type,
            entity_id=obj.id,
            organisation_id=organisation_id,
            actor_id=actor_id,
            actor_role=principal.role.value if principal else None,
            new_values=column_values(obj, cls.audit_exclude),
        )
        await cls.after_write(db, obj, "create")
        logger.info("Created %s %s in organisation %s", cls.entity_type, obj.id, organisation_id)
        return obj

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal: Optional["Principal"],
        obj_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Any:
        """Apply a partial update; unset fields are left untouched."""
        obj = await cls.get(db, organisation_id, principal, obj_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "organisation_id")}

        await cls.before_update(db, obj, principal, changes)
        cls._check_not_null(changes)
        merged = {col.key: getattr(obj, col.key) for col in obj.__table__.columns}
        merged.update(changes)
        await cls._check_references(db, organisation_id, changes)
        await cls._check_unique(db, organisation_id, changes, exclude_id=obj.id)
        await cls.validate(db, organisation_id, merged, obj)

        old_values = column_values(obj, cls.audit_exclude)
        for key, value in changes.items():
            setattr(obj, key, value)
        obj.modified_at = datetime.now(timezone.utc)
        obj.modified_by = principal.id if principal else None
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type=cls.entity_type,
            entity_id=obj.id,
            organisation_id=organisation_id,
            actor_id=principal.id if principal else None,
            actor_role=principal.role.value if principal else None,
            old_values=old_values,
            new_values=column_values(obj, cls.audit_exclude),
        )
        await cls.after_write(db, obj, "update")
        logger.info("Updated %s %s", cls.entity_type, obj.id)
        return obj

    @classmethod
    async def soft_delete(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal: Optional["Principal"],
        obj_id: uuid.UUID,
    ) -> Any:
        """Flag the row deleted; it disappears from every read path."""
        obj = await cls.get(db, organisation_id, principal, obj_id)
        await cls.before_delete(db, obj)
        obj.delete_flag = True
        obj.active_flag = False
        obj.modified_at = datetime.now(timezone.utc)
        obj.modified_by = principal.id if principal else None
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type=cls.entity_type,
            entity_id=obj.id,
            organisation_id=organisation_id,
            actor_id=principal.id if principal else None,
            actor_role=principal.role.value if principal else None,
        )
        await cls.after_write(db, obj, "delete")
        logger.info("Deleted %s %s", cls.entity_type, obj.id)
        return obj

    # ── Hooks ───────────────────────────────────────────────────────

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        """Mutate *values* in place before validation (derived fields, codes...)."""

    @classmethod
    async def before_update(cls, db, obj, principal, changes) -> None:
        """Mutate *changes* in place before validation."""

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        """Raise to block deletion."""

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        """Cross-field rules on the merged row; raise ValidationException."""

    @classmethod
    async def after_write(cls, db, obj, action: str) -> None:
        """Maintain derived data on other rows after a flush."""

    # ── Serialisation ───────────────────────────────────────────────

    @classmethod
    def serialize(cls, obj: Any, include: Iterable[str] = ()) -> dict[str, Any]:
        data = cls.out_schema.model_validate(obj).model_dump(mode="json")
        for name in include:
            schema = cls.includes[name]
            related = getattr(obj, name)
            if isinstance(related, list):
                data[name] = [
                    schema.model_validate(r).model_dump(mode="json") for r in related if _is_live(r)
                ]
            elif related is None or not _is_live(related):
                data[name] = None
            else:
                data[name] = schema.model_validate(related).model_dump(mode="json")
        return data

    # ── Internal checks ─────────────────────────────────────────────

    @classmethod
    def _check_not_null(cls, values: dict[str, Any]) -> None:
        errors = {
            col.key: ["This field may not be null."]
            for col in cls.model.__table__.columns
            if not col.nullable and col.key in values and values[col.key] is None
        }
        if errors:
            raise ValidationException(errors)

    @classmethod
    async def _check_references(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        values: dict[str, Any],
    ) -> None:
        errors: dict[str, list[str]] = {}
        for field, ref_model in cls.references.items():
            value = values.get(field)
            if value is None:
                continue
            result = await db.execute(
                select(ref_model.id).where(
                    ref_model.id == value,
                    ref_model.organisation_id == organisation_id,
                    ref_model.delete_flag.is_(False),
                ),
            )
            if result.scalar_one_or_none() is None:
                errors[field] = [f"{ref_model.__name__} '{value}' does not exist."]
        if errors:
            raise ValidationException(errors)

    @classmethod
    async def _check_unique(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        values: dict[str, Any],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        for field in (*cls.unique_fields, *cls.global_unique_fields):
            value = values.get(field)
            if value is None:
                continue
            col = getattr(cls.model, field)
            query = select(func.count()).select_from(cls.model).where(
                func.lower(col) == value.lower() if isinstance(value, str) else col == value,
                cls.model.delete_flag.is_(False),
            )
            if field in cls.unique_fields:
                query = query.where(cls.model.organisation_id == organisation_id)
            if exclude_id is not None:
                query = query.where(cls.model.id != exclude_id)
            if (await db.execute(query)).scalar_one():
                raise ConflictError(field, value)
