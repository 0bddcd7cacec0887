from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ride_sync.domain.value_objects.enums import MessageType, SenderRole
from ride_sync.infrastructure.schemas.common import ref_id


class ChatMessageSchema(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "conversation_id", "conversation"),
    )
    message: str = Field(default="", validation_alias=AliasChoices("message", "text", "body"))
    message_type: MessageType = Field(
        default=MessageType.TEXT,
        validation_alias=AliasChoices("messageType", "message_type", "type"),
    )
    sender_role: SenderRole | None = Field(
        default=None,
        validation_alias=AliasChoices("senderRole", "senderType", "sender_role", "role"),
    )
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at", "timestamp"),
    )

    @field_validator("id", "conversation_id", mode="before")
    @classmethod
    def _coerce_ref(cls, v: Any) -> str | None:
        return ref_id(v)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("message_type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> Any:
        return v if v in MessageType.__members__.values() else MessageType.TEXT

    @field_validator("sender_role", mode="before")
    @classmethod
    def _coerce_role(cls, v: Any) -> Any:
        if isinstance(v, str) and v.lower() in SenderRole.__members__.values():
            return v.lower()
        return None


class MessageReceivedEvent(BaseModel):
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "conversation_id"),
    )
    message: ChatMessageSchema

    @field_validator("conversation_id", mode="before")
    @classmethod
    def _coerce_ref(cls, v: Any) -> str | None:
        return ref_id(v)


class TypingEvent(BaseModel):
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "conversation_id"),
    )
    is_typing: bool = Field(default=False, validation_alias=AliasChoices("isTyping", "is_typing"))


class SendMessageRequest(BaseModel):
    ride_id: str = Field(serialization_alias="rideId")
    message: str
    message_type: MessageType = Field(default=MessageType.TEXT, serialization_alias="messageType")


class SendMessageResponse(BaseModel):
    success: bool = False
    message: ChatMessageSchema | None = None
