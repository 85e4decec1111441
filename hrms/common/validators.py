"""Small field validators shared by several resources."""

from __future__ import annotations

import re
from datetime import datetime, time
from typing import Any, Mapping, Optional

from hrms.common.constants import TIME_FORMAT

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def is_hhmm(value: str) -> bool:
    return bool(_HHMM.match(value))


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value, TIME_FORMAT).time()


def coordinate_errors(values: Mapping[str, Any]) -> dict[str, list[str]]:
    """Check ``latitude`` / ``longitude`` strings in *values* (empty values pass)."""
    errors: dict[str, list[str]] = {}
    for field, limit in (("latitude", 90), ("longitude", 180)):
        raw = values.get(field)
        if raw in (None, ""):
            continue
        number = _as_float(raw)
        if number is None:
            errors[field] = ["Must be a decimal number."]
        elif not -limit <= number <= limit:
            errors[field] = [f"Must be between -{limit} and {limit}."]
    return errors


def _as_float(raw: Any) -> Optional[float]:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None
