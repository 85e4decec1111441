"""Generic filtering, sorting, and search utilities."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy import Select, String, and_, cast, or_
from sqlalchemy.orm import InstrumentedAttribute

from hrms.common.pagination import SortSpec


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    model: Any,
    sort: Optional[SortSpec],
    *,
    default: str = "-created_at",
) -> Select:
    """
    Apply ORDER BY from a ``{"field", "order"}`` mapping.

    * Unknown fields fall back to *default* (``-`` prefix → DESC).
    * ``id`` is always appended as a tie-breaker so pages are stable.
    """
    col = _get_column(model, sort.field) if sort else None
    if col is not None:
        query = query.order_by(col.desc() if sort.order == "desc" else col.asc())
    else:
        descending = default.startswith("-")
        col = _get_column(model, default.lstrip("-"))
        if col is not None:
            query = query.order_by(col.desc() if descending else col.asc())

    id_col = _get_column(model, "id")
    if id_col is not None:
        query = query.order_by(id_col.asc())
    return query


# ── Generic filtering ──────────────────────────────────────────────

def apply_filters(
    query: Select,
    model: Any,
    filters: dict[str, Any],
) -> Select:
    """
    Apply a dict of filter parameters to a SQLAlchemy ``Select``.

    Key suffixes determine the operator:

    ============  ==================
    Suffix        Operator
    ============  ==================
    (none)        ``==``
    ``__ilike``   case-insensitive LIKE (wraps ``%…%``)
    ``__from``    ``>=``
    ``__to``      ``<=``
    ``__in``      ``IN (…)``
    ============  ==================

    ``None`` values and unknown columns are silently skipped.
    """
    conditions: list = []

    for key, value in filters.items():
        if value is None:
            continue

        if key.endswith("__ilike"):
            col = _get_column(model, key.removesuffix("__ilike"))
            if col is not None:
                conditions.append(col.ilike(f"%{value}%"))

        elif key.endswith("__from"):
            col = _get_column(model, key.removesuffix("__from"))
            if col is not None:
                conditions.append(col >= value)

        elif key.endswith("__to"):
            col = _get_column(model, key.removesuffix("__to"))
            if col is not None:
                conditions.append(col <= value)

        elif key.endswith("__in"):
            col = _get_column(model, key.removesuffix("__in"))
            if col is not None:
                conditions.append(col.in_(value))

        else:
            col = _get_column(model, key)
            if col is not None:
                conditions.append(col == value)

    if conditions:
        query = query.where(and_(*conditions))

    return query


# ── Search ──────────────────────────────────────────────────────────

def apply_search(
    query: Select,
    model: Any,
    search: Optional[str],
    columns: Sequence[str],
) -> Select:
    """Case-insensitive substring match of *search* across *columns*."""
    if not search or not search.strip():
        return query

    term = f"%{search.strip()}%"
    like_conds = [
        cast(col, String).ilike(term)
        for col in (_get_column(model, name) for name in columns)
        if col is not None
    ]
    if not like_conds:
        return query
    return query.where(or_(*like_conds))


# ── Internal helper ─────────────────────────────────────────────────

def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    """Return a mapped *column* attribute by name, ignoring relationships."""
    if name not in model.__table__.columns:
        return None
    return getattr(model, name, None)
