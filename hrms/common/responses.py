"""Success envelope and JSON-safe serialisation helpers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder

from hrms.common.pagination import PageInfo


def envelope(
    data: Any = None,
    message: str = "",
    page_info: Optional[PageInfo] = None,
) -> dict[str, Any]:
    """``{"status": true, "message": ..., "data": ..., "page_info": ...}``."""
    body: dict[str, Any] = {"status": True, "message": message, "data": data}
    if page_info is not None:
        body["page_info"] = page_info.model_dump()
    return body


def jsonable(value: Any) -> Any:
    """Convert ORM column values into JSON-safe primitives (for audit rows)."""
    return jsonable_encoder(value)


def column_values(obj: Any, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
    """Snapshot of an ORM row's column attributes, JSON-safe."""
    return {
        col.key: jsonable(getattr(obj, col.key))
        for col in obj.__table__.columns
        if col.key not in exclude
    }
