from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AlertPayload:
    driver_id: str
    message: str
    include_location: bool = False


@dataclass(frozen=True, slots=True)
class FlushResult:
    sent: int
    remaining: int
