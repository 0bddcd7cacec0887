"""Per-user notification feed: push when the channel is up, ride polling when it is not."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from pydantic import ValidationError as SchemaError

from ride_sync.application.dto.connection import ConnectionSnapshot
from ride_sync.application.dto.notification import NotificationDraft
from ride_sync.application.exceptions import DeliveryError
from ride_sync.application.ports.api import RideApi
from ride_sync.application.ports.channel import DuplexChannel
from ride_sync.application.ports.clock import Clock, SystemClock
from ride_sync.application.ports.storage import KeyValueStore
from ride_sync.config import settings
from ride_sync.domain.entities.notification import NotificationRecord
from ride_sync.domain.value_objects.enums import ChannelEvent
from ride_sync.infrastructure.mappers.notification import event_to_draft
from ride_sync.infrastructure.schemas.notification import NotificationEvent
from ride_sync.infrastructure.timers import PeriodicTimer
from ride_sync.infrastructure.ws.manager import ConnectionManager
from ride_sync.services import notification_service
from ride_sync.services.ride_watch_service import RideSnapshot, diff_rides

logger = logging.getLogger(__name__)


class NotificationFeed:
    """Keeps the in-memory list in step with the stored collection.

    Every mutation goes through one lock, so the store never sees two
    read-modify-write cycles for this user at the same time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        api: RideApi,
        manager: ConnectionManager,
        *,
        user_id: str | None,
        clock: Clock | None = None,
        poll_interval: float = settings.NOTIFICATION_POLL_INTERVAL,
    ) -> None:
        self.user_id = user_id
        self._store = store
        self._api = api
        self._manager = manager
        self._clock = clock or SystemClock()
        self._items: list[NotificationRecord] = []
        self._loading = True
        self._lock = asyncio.Lock()
        self._channel: DuplexChannel | None = None
        self._rides: RideSnapshot | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._poll_timer = PeriodicTimer(
            f"notifications-poll:{user_id or 'guest'}",
            poll_interval,
            self.poll_rides,
            run_immediately=True,
        )

    @property
    def notifications(self) -> list[NotificationRecord]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return notification_service.unread_count(self._items)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def poll_timer(self) -> PeriodicTimer:
        return self._poll_timer

    async def start(self) -> None:
        loaded = await notification_service.load(self._store, self.user_id)
        self._items = notification_service.sort_by_timestamp_desc(loaded)
        self._loading = False
        self._unsubscribe = self._manager.subscribe(self._on_connection)
        await self._on_connection(self._manager.snapshot)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._poll_timer.stop()
        self._detach()

    async def add(self, draft: NotificationDraft) -> list[NotificationRecord]:
        async with self._lock:
            self._items = await notification_service.add(self._store, self.user_id, draft, self._clock)
            return self.notifications

    async def mark_read(self, notification_id: str) -> list[NotificationRecord]:
        async with self._lock:
            self._items = await notification_service.mark_read(self._store, self.user_id, notification_id)
            return self.notifications

    async def mark_all_read(self) -> list[NotificationRecord]:
        async with self._lock:
            self._items = await notification_service.mark_all_read(self._store, self.user_id)
            return self.notifications

    async def clear(self) -> None:
        async with self._lock:
            await notification_service.clear_all(self._store, self.user_id)
            self._items = []

    async def poll_rides(self) -> None:
        """One ride-state poll: diff against the last snapshot and add what changed."""
        try:
            rides = await self._api.fetch_my_rides()
        except DeliveryError as exc:
            logger.debug("Ride poll failed: %s", exc.detail)
            return
        drafts, self._rides = diff_rides(self._rides, rides)
        for draft in drafts:
            await self.add(draft)
        if drafts:
            logger.debug("Synthesized %d notifications from ride state", len(drafts))

    async def _on_connection(self, _snapshot: ConnectionSnapshot) -> None:
        snapshot = self._manager.snapshot
        if snapshot.channel is not self._channel:
            self._detach()
            if snapshot.channel is not None:
                snapshot.channel.on(ChannelEvent.NOTIFICATION, self._on_notification)
                self._channel = snapshot.channel

        if snapshot.channel is None:
            if not self._poll_timer.active:
                # the first poll of each polling stretch only primes the snapshot
                self._rides = None
                self._poll_timer.start()
        else:
            self._poll_timer.cancel()

    def _detach(self) -> None:
        if self._channel is not None:
            self._channel.off(ChannelEvent.NOTIFICATION, self._on_notification)
            self._channel = None

    async def _on_notification(self, payload: Any) -> None:
        try:
            event = NotificationEvent.model_validate(payload)
        except SchemaError:
            logger.warning("Dropping malformed notification event")
            return
        await self.add(event_to_draft(event))
