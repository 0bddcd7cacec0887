from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RideSummary:
    id: str
    status: str
    driver_id: str | None = None
