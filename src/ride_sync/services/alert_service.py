"""Best-effort delivery of emergency alerts with a persisted retry queue."""
from __future__ import annotations

import json
import logging

from pydantic import ValidationError as SchemaError

from ride_sync.application.dto.alert import AlertPayload, FlushResult
from ride_sync.application.ports.api import RideApi
from ride_sync.application.ports.clock import Clock, epoch_ms
from ride_sync.application.ports.storage import KeyValueStore
from ride_sync.config import settings
from ride_sync.domain.entities.alert import QueuedAlert
from ride_sync.infrastructure.mappers.alert import (
    entity_to_payload,
    entity_to_schema,
    schema_to_entity,
)
from ride_sync.infrastructure.schemas.alert import QueuedAlertSchema

logger = logging.getLogger(__name__)


async def load_queue(
    store: KeyValueStore,
    *,
    key: str = settings.ALERT_QUEUE_KEY,
) -> list[QueuedAlert]:
    raw = await store.get(key)
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Corrupt alert queue under %s, treating as empty", key)
        return []
    if not isinstance(data, list):
        logger.warning("Alert queue under %s is not a list, treating as empty", key)
        return []

    queue: list[QueuedAlert] = []
    for entry in data:
        try:
            queue.append(schema_to_entity(QueuedAlertSchema.model_validate(entry)))
        except SchemaError:
            logger.warning("Dropping malformed alert queue entry under %s", key)
    return queue


async def save_queue(
    store: KeyValueStore,
    queue: list[QueuedAlert],
    *,
    key: str = settings.ALERT_QUEUE_KEY,
) -> None:
    raw = json.dumps([entity_to_schema(a).model_dump(by_alias=True) for a in queue])
    await store.set(key, raw)


async def enqueue(
    store: KeyValueStore,
    payload: AlertPayload,
    clock: Clock,
    *,
    key: str = settings.ALERT_QUEUE_KEY,
) -> QueuedAlert:
    queue = await load_queue(store, key=key)
    item = QueuedAlert(
        driver_id=payload.driver_id,
        message=payload.message,
        include_location=payload.include_location,
        queued_at=epoch_ms(clock),
    )
    queue.append(item)
    await save_queue(store, queue, key=key)
    return item


async def flush(
    api: RideApi,
    store: KeyValueStore,
    *,
    key: str = settings.ALERT_QUEUE_KEY,
) -> FlushResult:
    """Retry every queued alert in order and keep only the ones that failed again."""
    queue = await load_queue(store, key=key)
    if not queue:
        return FlushResult(sent=0, remaining=0)

    remaining: list[QueuedAlert] = []
    for item in queue:
        try:
            await api.send_emergency_alert(entity_to_payload(item))
        except Exception:
            logger.debug("Queued alert from %d still failing", item.queued_at, exc_info=True)
            remaining.append(item)

    await save_queue(store, remaining, key=key)
    sent = len(queue) - len(remaining)
    if sent:
        logger.info("Flushed %d queued emergency alerts (%d remaining)", sent, len(remaining))
    return FlushResult(sent=sent, remaining=len(remaining))
