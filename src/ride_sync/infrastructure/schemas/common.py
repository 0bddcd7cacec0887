"""Shared coercions for loosely-shaped server payloads."""
from __future__ import annotations

from typing import Any


def ref_id(value: Any) -> str | None:
    """Collapse an id that may arrive as a scalar or as an embedded document."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("_id", value.get("id"))
        if value is None:
            return None
    return str(value)
