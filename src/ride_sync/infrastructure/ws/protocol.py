"""JSON frames exchanged with the chat socket."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError


class WsInbound(BaseModel):
    """Server → Client. ``type`` is the event name handed to ``on`` handlers."""

    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Client → Server."""

    type: str
    data: dict[str, Any] = {}


def encode_frame(event: str, payload: dict[str, Any]) -> str:
    return WsOutbound(type=event, data=payload).model_dump_json()


def decode_frame(raw: str | bytes) -> WsInbound | None:
    """Return None for anything that is not a ``{type, data}`` envelope."""
    try:
        return WsInbound.model_validate_json(raw)
    except ValidationError:
        return None
