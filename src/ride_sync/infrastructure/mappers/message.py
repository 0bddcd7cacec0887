from __future__ import annotations

from ride_sync.domain.entities.message import ChatMessage
from ride_sync.infrastructure.schemas.message import ChatMessageSchema


def schema_to_entity(schema: ChatMessageSchema, *, default_conversation_id: str) -> ChatMessage:
    """History payloads are scoped by ride and often omit the conversation."""
    return ChatMessage(
        id=schema.id,
        conversation_id=schema.conversation_id or default_conversation_id,
        message=schema.message,
        message_type=schema.message_type,
        sender_role=schema.sender_role,
        created_at=schema.created_at,
    )
