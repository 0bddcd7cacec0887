from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ride_sync.domain.value_objects.enums import MessageType, SenderRole


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    conversation_id: str
    message: str
    message_type: MessageType
    sender_role: SenderRole | None
    created_at: datetime | None
