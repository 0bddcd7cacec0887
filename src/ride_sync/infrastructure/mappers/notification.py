from __future__ import annotations

from ride_sync.application.dto.notification import NotificationDraft
from ride_sync.domain.entities.notification import NotificationRecord
from ride_sync.infrastructure.schemas.notification import NotificationEvent, StoredNotification


def stored_to_entity(schema: StoredNotification) -> NotificationRecord:
    return NotificationRecord(
        id=schema.id,
        title=schema.title,
        body=schema.body,
        category=schema.category,
        timestamp=schema.timestamp,
        read=schema.read,
    )


def entity_to_stored(entity: NotificationRecord) -> StoredNotification:
    return StoredNotification(
        id=entity.id,
        title=entity.title,
        body=entity.body,
        category=entity.category,
        timestamp=entity.timestamp,
        read=entity.read,
    )


def event_to_draft(event: NotificationEvent) -> NotificationDraft:
    return NotificationDraft(
        title=event.title,
        body=event.body,
        category=event.category,
        id=event.id,
        timestamp=event.timestamp,
    )
