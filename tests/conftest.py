"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from ride_sync.application.dto.alert import AlertPayload
from ride_sync.application.dto.message import SendResult
from ride_sync.application.exceptions import DeliveryError
from ride_sync.domain.entities.message import ChatMessage
from ride_sync.domain.entities.ride import RideSummary
from ride_sync.domain.value_objects.enums import ChannelEvent, MessageType, SenderRole
from ride_sync.infrastructure.ws.manager import ConnectionManager


def make_message(
    message_id: str,
    *,
    conversation_id: str = "ride-1",
    text: str = "hello",
    role: SenderRole | None = SenderRole.DRIVER,
) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        conversation_id=conversation_id,
        message=text,
        message_type=MessageType.TEXT,
        sender_role=role,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


def make_ride(ride_id: str, status: str = "pending") -> RideSummary:
    return RideSummary(id=ride_id, status=status)


def message_event(message_id: str, *, room: str = "ride-1", text: str = "hi") -> dict[str, Any]:
    """Wire payload of a ``messageReceived`` event."""
    return {
        "conversationId": room,
        "message": {"_id": message_id, "message": text, "messageType": "text", "senderRole": "driver"},
    }


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeClock:
    current: datetime = field(default_factory=lambda: datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self.current

    def advance(self, ms: int) -> None:
        self.current = self.current + timedelta(milliseconds=ms)


@dataclass
class InMemoryStore:
    """Key-value store; ``yield_on_io`` makes every call a real suspension point."""

    data: dict[str, str] = field(default_factory=dict)
    yield_on_io: bool = False

    async def get(self, key: str) -> str | None:
        if self.yield_on_io:
            await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.yield_on_io:
            await asyncio.sleep(0)
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class FakeTokenProvider:
    token: str | None = "token-abc"
    fail: bool = False

    async def get_token(self) -> str | None:
        if self.fail:
            raise RuntimeError("keychain locked")
        return self.token


@dataclass
class FakeNotifier:
    scheduled: list[tuple[str, str]] = field(default_factory=list)
    fail: bool = False

    async def schedule(self, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("notifications disabled")
        self.scheduled.append((title, body))


@dataclass
class FakeChannel:
    """DuplexChannel driven by hand.

    ``connect`` only records the credentials unless ``auto_connect``,
    ``connect_error`` or ``connect_exception`` is set; tests fire lifecycle
    events themselves.
    """

    connected: bool = False
    auto_connect: bool = False
    connect_error: str | None = None
    connect_exception: Exception | None = None
    credentials: list[dict[str, str]] = field(default_factory=list)
    emitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    handlers: dict[str, list[Any]] = field(default_factory=dict)
    disconnect_calls: int = 0

    async def connect(self, credentials: dict[str, str]) -> None:
        self.credentials.append(dict(credentials))
        if self.connect_exception is not None:
            raise self.connect_exception
        if self.connect_error is not None:
            await self.fire(ChannelEvent.CONNECT_ERROR, self.connect_error)
        elif self.auto_connect:
            await self.simulate_connect()

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.connected:
            await self.simulate_drop("io client disconnect")

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.emitted.append((event, payload))

    def on(self, event: str, handler: Any) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Any) -> None:
        handlers = self.handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self.handlers.get(event, []))
        return sum(len(h) for h in self.handlers.values())

    def emitted_events(self) -> list[str]:
        return [event for event, _ in self.emitted]

    async def fire(self, event: str, payload: Any = None) -> None:
        for handler in list(self.handlers.get(event, [])):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    async def simulate_connect(self) -> None:
        self.connected = True
        await self.fire(ChannelEvent.CONNECT)

    async def simulate_drop(self, reason: str = "transport close") -> None:
        self.connected = False
        await self.fire(ChannelEvent.DISCONNECT, reason)


@dataclass
class FakeRideApi:
    history: list[ChatMessage] = field(default_factory=list)
    rides: list[RideSummary] = field(default_factory=list)
    fail_history: bool = False
    fail_rides: bool = False
    fail_send: bool = False
    send_success: bool = True
    failing_alerts: set[str] = field(default_factory=set)
    history_calls: int = 0
    sent: list[tuple[str, str, MessageType]] = field(default_factory=list)
    alert_attempts: list[AlertPayload] = field(default_factory=list)
    delivered_alerts: list[AlertPayload] = field(default_factory=list)

    async def fetch_message_history(self, ride_id: str) -> list[ChatMessage]:
        self.history_calls += 1
        if self.fail_history:
            raise DeliveryError("history unavailable")
        return list(self.history)

    async def send_message(
        self,
        ride_id: str,
        message: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> SendResult:
        if self.fail_send:
            raise DeliveryError("send failed")
        self.sent.append((ride_id, message, message_type))
        if not self.send_success:
            return SendResult(success=False)
        echoed = make_message(f"srv-{len(self.sent)}", conversation_id=ride_id, text=message)
        self.history.append(echoed)
        return SendResult(success=True, message=echoed)

    async def fetch_my_rides(self) -> list[RideSummary]:
        if self.fail_rides:
            raise DeliveryError("rides unavailable")
        return list(self.rides)

    async def send_emergency_alert(self, payload: AlertPayload) -> list[str]:
        self.alert_attempts.append(payload)
        if payload.message in self.failing_alerts:
            raise DeliveryError("net")
        self.delivered_alerts.append(payload)
        return ["+123"]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tokens() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def api() -> FakeRideApi:
    return FakeRideApi()


@pytest.fixture
def manager(channel: FakeChannel, tokens: FakeTokenProvider) -> ConnectionManager:
    return ConnectionManager(
        lambda: channel,
        tokens,
        reconnect_interval=0.01,
        failure_threshold=2,
    )
