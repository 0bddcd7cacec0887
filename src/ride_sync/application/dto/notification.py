from __future__ import annotations

from dataclasses import dataclass

from ride_sync.domain.value_objects.enums import NotificationCategory


@dataclass(frozen=True, slots=True)
class NotificationDraft:
    title: str
    body: str
    category: NotificationCategory = NotificationCategory.INFORMATIONAL
    id: str | None = None
    timestamp: int | None = None
    read: bool = False
