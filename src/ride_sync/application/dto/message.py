from __future__ import annotations

from dataclasses import dataclass

from ride_sync.domain.entities.message import ChatMessage


@dataclass(frozen=True, slots=True)
class SendResult:
    success: bool
    message: ChatMessage | None = None
