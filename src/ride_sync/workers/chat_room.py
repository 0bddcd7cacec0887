"""One open chat panel: room membership, delivery, sending and typing state."""
from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError as SchemaError

from ride_sync.application.dto.connection import ConnectionSnapshot
from ride_sync.application.exceptions import AppError, DeliveryError
from ride_sync.application.ports.api import RideApi
from ride_sync.application.ports.auth import TokenProvider
from ride_sync.application.ports.channel import DuplexChannel
from ride_sync.application.ports.notifier import LocalNotifier
from ride_sync.config import settings
from ride_sync.domain.entities.message import ChatMessage
from ride_sync.domain.value_objects.enums import ChannelEvent, SenderRole
from ride_sync.infrastructure.mappers.message import schema_to_entity
from ride_sync.infrastructure.schemas.message import MessageReceivedEvent, TypingEvent
from ride_sync.infrastructure.timers import DebounceTimer, PeriodicTimer
from ride_sync.infrastructure.ws.manager import ConnectionManager
from ride_sync.services import message_service

logger = logging.getLogger(__name__)


class ChatRoom:
    """Messages for one ride conversation.

    Realtime events are used whenever a connected channel is published;
    otherwise history is polled and diffed by id. Both paths feed the same
    list and an id is never present twice. Only one panel per room is
    supported at a time.
    """

    def __init__(
        self,
        api: RideApi,
        manager: ConnectionManager,
        notifier: LocalNotifier,
        tokens: TokenProvider,
        *,
        ride_id: str,
        conversation_id: str | None = None,
        user_role: SenderRole = SenderRole.COMMUTER,
        poll_interval: float = settings.MESSAGE_POLL_INTERVAL,
        typing_idle: float = settings.TYPING_IDLE_SECONDS,
        max_length: int = settings.MESSAGE_MAX_LENGTH,
        read_receipts: bool = False,
    ) -> None:
        self.ride_id = ride_id
        self.room = message_service.room_for(ride_id, conversation_id)
        self.user_role = user_role
        self.read_receipts = read_receipts
        self.messages: list[ChatMessage] = []
        self.draft = ""
        self.remote_typing = False
        self.history_error: str | None = None
        self.send_error: str | None = None

        self._api = api
        self._manager = manager
        self._notifier = notifier
        self._tokens = tokens
        self._max_length = max_length
        self._channel: DuplexChannel | None = None
        self._joined = False
        self._unsubscribe: Callable[[], None] | None = None
        self._poll_timer = PeriodicTimer(
            f"chat-poll:{self.room}", poll_interval, self.poll_history, run_immediately=True,
        )
        self._typing_timer = DebounceTimer(f"chat-typing:{self.room}", typing_idle, self._typing_stopped)

    @property
    def poll_timer(self) -> PeriodicTimer:
        return self._poll_timer

    @property
    def typing_timer(self) -> DebounceTimer:
        return self._typing_timer

    async def open(self) -> None:
        self._unsubscribe = self._manager.subscribe(self._on_connection)
        # load_history is the first fetch; polling starts one interval later
        await self._on_connection(self._manager.snapshot, poll_now=False)
        await self.load_history()

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._poll_timer.stop()
        await self._typing_timer.stop()
        if self._channel is not None and self._joined and self._channel.connected:
            await self._channel.emit(ChannelEvent.LEAVE_ROOM, {"conversationId": self.room})
        self._detach()

    async def load_history(self) -> bool:
        """Fetch history regardless of channel state; failures land in ``history_error``."""
        try:
            history = await self._api.fetch_message_history(self.ride_id)
        except DeliveryError as exc:
            self.history_error = exc.detail or "Could not load messages"
            logger.warning("History load failed for ride %s: %s", self.ride_id, exc.detail)
            return False
        self.history_error = None
        self.messages = message_service.hydrate(self.messages, history)
        return True

    async def retry_history(self) -> bool:
        return await self.load_history()

    async def poll_history(self) -> None:
        if self._manager.snapshot.realtime:
            return
        try:
            history = await self._api.fetch_message_history(self.ride_id)
        except DeliveryError as exc:
            logger.debug("History poll failed for ride %s: %s", self.ride_id, exc.detail)
            return
        self.history_error = None
        before = len(self.messages)
        self.messages = message_service.merge_new(self.messages, history)
        if len(self.messages) != before:
            logger.debug("Poll picked up %d messages in %s", len(self.messages) - before, self.room)

    async def send(self) -> ChatMessage | None:
        """Send the current draft. The draft is cleared only after the server confirms."""
        try:
            message = await message_service.send_message(
                self._api, self.ride_id, self.draft, max_length=self._max_length,
            )
        except AppError as exc:
            self.send_error = exc.detail
            return None
        self.send_error = None
        self.messages = message_service.merge_new(self.messages, [message])
        self.draft = ""
        return message

    async def on_input(self, text: str) -> None:
        self.draft = text
        snapshot = self._manager.snapshot
        if not snapshot.realtime or snapshot.channel is None:
            return
        await snapshot.channel.emit(
            ChannelEvent.TYPING_START, {"conversationId": self.room, "userId": self.user_role},
        )
        self._typing_timer.arm()

    async def mark_visible(self, message: ChatMessage) -> None:
        if not self.read_receipts:
            return
        snapshot = self._manager.snapshot
        if not snapshot.realtime or snapshot.channel is None:
            return
        await snapshot.channel.emit(
            ChannelEvent.MESSAGE_READ,
            {"conversationId": self.room, "messageId": message.id, "userId": self.user_role},
        )

    async def _typing_stopped(self) -> None:
        snapshot = self._manager.snapshot
        if snapshot.realtime and snapshot.channel is not None:
            await snapshot.channel.emit(
                ChannelEvent.TYPING_STOP, {"conversationId": self.room, "userId": self.user_role},
            )

    async def _on_connection(self, _snapshot: ConnectionSnapshot, *, poll_now: bool = True) -> None:
        # a subscriber ahead of this one may already have changed the state
        snapshot = self._manager.snapshot
        channel = snapshot.channel
        if channel is not self._channel:
            self._detach()
            if channel is not None:
                channel.on(ChannelEvent.MESSAGE_RECEIVED, self._on_message)
                channel.on(ChannelEvent.USER_TYPING, self._on_typing)
                self._channel = channel

        if snapshot.realtime and channel is not None:
            self._poll_timer.cancel()
            if not self._joined:
                # the server forgets room membership with the socket
                self._joined = True
                await channel.emit(ChannelEvent.JOIN_ROOM, {"conversationId": self.room})
        else:
            self._joined = False
            self.remote_typing = False
            self._poll_timer.start(run_immediately=poll_now)

    def _detach(self) -> None:
        if self._channel is not None:
            self._channel.off(ChannelEvent.MESSAGE_RECEIVED, self._on_message)
            self._channel.off(ChannelEvent.USER_TYPING, self._on_typing)
            self._channel = None
        self._joined = False

    async def _on_message(self, payload: Any) -> None:
        try:
            event = MessageReceivedEvent.model_validate(payload)
        except SchemaError:
            logger.warning("Dropping malformed messageReceived event in %s", self.room)
            return
        if event.conversation_id != self.room:
            return
        message = schema_to_entity(event.message, default_conversation_id=self.room)
        merged = message_service.merge_new(self.messages, [message])
        if merged is self.messages:
            logger.debug("Duplicate message %s ignored", message.id)
            return
        self.messages = merged
        await self._notify(message)

    async def _notify(self, message: ChatMessage) -> None:
        try:
            if not await self._tokens.get_token():
                return
            await self._notifier.schedule("New Message", message.message or "You received a new message")
        except Exception:
            logger.debug("Local notification for %s failed", message.id, exc_info=True)

    async def _on_typing(self, payload: Any) -> None:
        try:
            event = TypingEvent.model_validate(payload)
        except SchemaError:
            return
        if event.conversation_id is not None and event.conversation_id != self.room:
            return
        self.remote_typing = event.is_typing
