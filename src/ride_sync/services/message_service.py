from __future__ import annotations

import logging

from ride_sync.application.exceptions import DeliveryError, ValidationError
from ride_sync.application.ports.api import RideApi
from ride_sync.config import settings
from ride_sync.domain.entities.message import ChatMessage
from ride_sync.domain.value_objects.enums import MessageType

logger = logging.getLogger(__name__)


def room_for(ride_id: str, conversation_id: str | None) -> str:
    return conversation_id or ride_id


def validate_outgoing(text: str, *, max_length: int = settings.MESSAGE_MAX_LENGTH) -> str:
    """Return the text to send, or raise ValidationError."""
    body = text.strip()
    if not body:
        raise ValidationError("Message cannot be empty")
    if len(body) > max_length:
        raise ValidationError(f"Message exceeds {max_length} characters")
    return body


def merge_new(existing: list[ChatMessage], incoming: list[ChatMessage]) -> list[ChatMessage]:
    """Append the incoming messages whose id is not present yet, keeping their order.

    Returns ``existing`` itself when nothing is new.
    """
    seen = {m.id for m in existing}
    fresh: list[ChatMessage] = []
    for m in incoming:
        if m.id in seen:
            continue
        seen.add(m.id)
        fresh.append(m)
    if not fresh:
        return existing
    return [*existing, *fresh]


def hydrate(existing: list[ChatMessage], history: list[ChatMessage]) -> list[ChatMessage]:
    """History first, then anything already delivered that history does not know yet."""
    return merge_new(merge_new([], history), existing)


async def send_message(
    api: RideApi,
    ride_id: str,
    text: str,
    *,
    max_length: int = settings.MESSAGE_MAX_LENGTH,
) -> ChatMessage:
    """Validate and send a text message; return the server's copy.

    Raises ValidationError before any network call, DeliveryError when the
    server did not confirm the message.
    """
    body = validate_outgoing(text, max_length=max_length)
    result = await api.send_message(ride_id, body, MessageType.TEXT)
    if not result.success or result.message is None:
        raise DeliveryError("Message was not accepted by the server")
    logger.debug("Sent message %s for ride %s", result.message.id, ride_id)
    return result.message
