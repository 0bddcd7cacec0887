from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QueuedAlert:
    driver_id: str
    message: str
    include_location: bool
    queued_at: int  # epoch ms
