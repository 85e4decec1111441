"""Base Pydantic v2 schemas shared by every resource.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
  - *ListRequest       → ``/list`` bodies with typed filters
"""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class InputSchema(BaseModel):
    """Request bodies: enums are stored as their plain values."""

    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    organisation_id: Optional[uuid.UUID] = None


class UpdateSchema(InputSchema):
    """``PUT /<resource>/update`` bodies carry the row id plus a partial payload."""

    id: uuid.UUID
    active_flag: Optional[bool] = None


class RecordOut(BaseModel):
    """Columns every tenant-scoped row carries."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organisation_id: uuid.UUID
    active_flag: bool
    delete_flag: bool
    created_at: datetime
    modified_at: datetime
    created_by: Optional[uuid.UUID] = None
    modified_by: Optional[uuid.UUID] = None
