"""JSON-file key/value store standing in for browser localStorage."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Keys
AUTH_TOKEN_KEY = "hrms_auth_token"
REFRESH_TOKEN_KEY = "hrms_refresh_token"
ORGANISATION_ID_KEY = "hrms_organisation_id"
USER_KEY = "hrms_user"
SELECTED_BRANCH_KEY = "hrms_selected_branch"
EMPLOYEES_KEY = "hrms_employees"
LEAVES_KEY = "hrms_leaves"
PAYROLL_KEY = "hrms_payroll"
DOCUMENTS_KEY = "hrms_documents"
BRANCHES_KEY = "hrms_branches"


class LocalStore:
    """Persist JSON values by key in a single file.

    With ``path=None`` the store lives in memory only. Every write rewrites
    the file; a missing or corrupt file reads as empty.
    """

    def __init__(self, path: Optional[str | os.PathLike] = None) -> None:
        self.path = Path(path).expanduser() if path is not None else None
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2, default=str), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)
        self._save()

    def clear(self) -> None:
        self._data = {}
        self._save()

    def __contains__(self, key: str) -> bool:
        return key in self._data
