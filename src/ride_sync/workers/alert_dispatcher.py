"""Emergency alert sending with a persisted retry queue, flushed periodically."""
from __future__ import annotations

import asyncio
import logging

from ride_sync.application.dto.alert import AlertPayload, FlushResult
from ride_sync.application.ports.api import RideApi
from ride_sync.application.ports.clock import Clock, SystemClock
from ride_sync.application.ports.storage import KeyValueStore
from ride_sync.config import settings
from ride_sync.domain.entities.alert import QueuedAlert
from ride_sync.infrastructure.timers import PeriodicTimer
from ride_sync.services import alert_service

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """Queue writes (enqueue and flush) are serialized behind one lock.

    The direct send happens outside the lock so a slow flush never delays
    a fresh alert.
    """

    def __init__(
        self,
        api: RideApi,
        store: KeyValueStore,
        *,
        clock: Clock | None = None,
        flush_interval: float = settings.ALERT_FLUSH_INTERVAL,
        queue_key: str = settings.ALERT_QUEUE_KEY,
    ) -> None:
        self._api = api
        self._store = store
        self._clock = clock or SystemClock()
        self._queue_key = queue_key
        self._lock = asyncio.Lock()
        self._flush_timer = PeriodicTimer("alert-flush", flush_interval, self.flush_now)

    @property
    def flush_timer(self) -> PeriodicTimer:
        return self._flush_timer

    def start(self) -> None:
        self._flush_timer.start()
        logger.info("Alert dispatcher started")

    async def stop(self) -> None:
        await self._flush_timer.stop()

    async def send(self, payload: AlertPayload) -> list[str] | None:
        """Return the recipients, or None when the alert was queued for retry."""
        try:
            return await self._api.send_emergency_alert(payload)
        except Exception:
            logger.warning(
                "Emergency alert for driver %s failed, queued for retry",
                payload.driver_id, exc_info=True,
            )
        async with self._lock:
            await alert_service.enqueue(self._store, payload, self._clock, key=self._queue_key)
        return None

    async def flush_now(self) -> FlushResult:
        async with self._lock:
            return await alert_service.flush(self._api, self._store, key=self._queue_key)

    async def pending(self) -> list[QueuedAlert]:
        return await alert_service.load_queue(self._store, key=self._queue_key)
