from __future__ import annotations

from dataclasses import dataclass

from ride_sync.domain.value_objects.enums import NotificationCategory


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    id: str
    title: str
    body: str
    category: NotificationCategory
    timestamp: int  # epoch ms
    read: bool = False
