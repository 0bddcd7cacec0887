"""Per-user notification collection kept in the key-value store.

Every mutating call is a read-modify-write of the whole collection. Callers
must not run two mutations for the same user at once.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace

from pydantic import ValidationError as SchemaError

from ride_sync.application.dto.notification import NotificationDraft
from ride_sync.application.ports.clock import Clock, epoch_ms
from ride_sync.application.ports.storage import KeyValueStore
from ride_sync.domain.entities.notification import NotificationRecord
from ride_sync.infrastructure.mappers.notification import entity_to_stored, stored_to_entity
from ride_sync.infrastructure.schemas.notification import StoredNotification

logger = logging.getLogger(__name__)


def key_for(user_id: str | None) -> str:
    return f"notifications:{user_id or 'guest'}"


def sort_by_timestamp_desc(items: list[NotificationRecord]) -> list[NotificationRecord]:
    return sorted(items, key=lambda n: n.timestamp, reverse=True)


def unread_count(items: list[NotificationRecord]) -> int:
    return sum(1 for n in items if not n.read)


async def load(store: KeyValueStore, user_id: str | None) -> list[NotificationRecord]:
    """Return the stored collection; anything unreadable counts as empty."""
    key = key_for(user_id)
    raw = await store.get(key)
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Corrupt notification payload under %s, treating as empty", key)
        return []
    if not isinstance(data, list):
        logger.warning("Notification payload under %s is not a list, treating as empty", key)
        return []

    items: list[NotificationRecord] = []
    for entry in data:
        try:
            items.append(stored_to_entity(StoredNotification.model_validate(entry)))
        except SchemaError:
            logger.debug("Skipping malformed notification entry under %s", key)
    return items


async def save(store: KeyValueStore, user_id: str | None, items: list[NotificationRecord]) -> None:
    raw = json.dumps([entity_to_stored(n).model_dump(mode="json") for n in items])
    await store.set(key_for(user_id), raw)


def _new_id(clock: Clock) -> str:
    return f"{epoch_ms(clock)}-{uuid.uuid4().hex[:10]}"


async def add(
    store: KeyValueStore,
    user_id: str | None,
    draft: NotificationDraft,
    clock: Clock,
) -> list[NotificationRecord]:
    """Insert a notification, replacing any stored record with the same id.

    A replayed record keeps its read flag, so re-delivery of a push event
    never marks an already-read notification as unread again.
    """
    existing = await load(store, user_id)
    item = NotificationRecord(
        id=draft.id or _new_id(clock),
        title=draft.title,
        body=draft.body,
        category=draft.category,
        timestamp=draft.timestamp if draft.timestamp is not None else epoch_ms(clock),
        read=draft.read,
    )

    previous = next((n for n in existing if n.id == item.id), None)
    if previous is not None:
        item = replace(item, read=item.read or previous.read)
        existing = [n for n in existing if n.id != item.id]

    items = sort_by_timestamp_desc([item, *existing])
    await save(store, user_id, items)
    return items


async def mark_read(
    store: KeyValueStore,
    user_id: str | None,
    notification_id: str,
) -> list[NotificationRecord]:
    existing = await load(store, user_id)
    items = sort_by_timestamp_desc(
        [replace(n, read=True) if n.id == notification_id else n for n in existing]
    )
    await save(store, user_id, items)
    return items


async def mark_all_read(store: KeyValueStore, user_id: str | None) -> list[NotificationRecord]:
    existing = await load(store, user_id)
    items = sort_by_timestamp_desc([replace(n, read=True) for n in existing])
    await save(store, user_id, items)
    return items


async def clear_all(store: KeyValueStore, user_id: str | None) -> None:
    await store.remove(key_for(user_id))
