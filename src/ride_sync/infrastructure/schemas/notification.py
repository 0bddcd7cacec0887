from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ride_sync.domain.value_objects.enums import NotificationCategory
from ride_sync.infrastructure.schemas.common import ref_id


class NotificationEvent(BaseModel):
    """Payload of a pushed ``notification`` event."""

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    title: str = ""
    body: str = ""
    category: NotificationCategory = NotificationCategory.INFORMATIONAL
    timestamp: int | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str | None:
        return ref_id(v)

    @field_validator("title", "body", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> Any:
        if v in NotificationCategory.__members__.values():
            return v
        return NotificationCategory.INFORMATIONAL

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return int(v)


class StoredNotification(BaseModel):
    """Persisted shape of a notification record."""

    id: str
    title: str
    body: str
    category: NotificationCategory
    timestamp: int
    read: bool = False
