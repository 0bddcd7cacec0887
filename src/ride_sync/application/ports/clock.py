from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def epoch_ms(clock: Clock) -> int:
    """Timestamps are stored as integer epoch milliseconds."""
    return int(clock.now().timestamp() * 1000)
