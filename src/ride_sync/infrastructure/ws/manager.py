"""Process-wide owner of the duplex channel."""
from __future__ import annotations

import inspect
import logging
import re
from dataclasses import replace
from typing import Any, Awaitable, Callable

from ride_sync.application.dto.connection import ConnectionSnapshot, ConnectionState
from ride_sync.application.ports.auth import TokenProvider
from ride_sync.application.ports.channel import DuplexChannel
from ride_sync.config import settings
from ride_sync.domain.value_objects.enums import ChannelEvent, ConnectionStatus
from ride_sync.infrastructure.timers import PeriodicTimer

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[ConnectionSnapshot], Awaitable[None] | None]


class ConnectionManager:
    """Connects the channel when a token is available and keeps it connected.

    Connect errors whose message looks like a transport failure are counted;
    once ``failure_threshold`` of them have been seen the manager degrades:
    the channel is dropped for the rest of the process and every subscriber
    is told ``channel=None`` so it can fall back to polling. Degraded is
    terminal. Errors that are not transport failures (e.g. the server
    rejecting the token) are retried by the reconnect timer indefinitely.
    """

    def __init__(
        self,
        channel_factory: Callable[[], DuplexChannel],
        token_provider: TokenProvider,
        *,
        reconnect_interval: float = settings.RECONNECT_INTERVAL,
        failure_threshold: int = settings.TRANSPORT_FAILURE_THRESHOLD,
        transport_error_pattern: str = settings.TRANSPORT_ERROR_PATTERN,
    ) -> None:
        self._channel_factory = channel_factory
        self._tokens = token_provider
        self._failure_threshold = failure_threshold
        self._transport_error = re.compile(transport_error_pattern, re.IGNORECASE)
        self._channel: DuplexChannel | None = None
        self._ever_connected = False
        self._connecting = False
        self._started = False
        self._state = ConnectionState()
        self._subscribers: list[SnapshotListener] = []
        self._generation = 0
        self._reconnect_timer = PeriodicTimer("reconnect", reconnect_interval, self.try_connect)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_timer(self) -> PeriodicTimer:
        return self._reconnect_timer

    @property
    def snapshot(self) -> ConnectionSnapshot:
        status = self._state.status
        published = self._channel if self._ever_connected and status != ConnectionStatus.DEGRADED else None
        return ConnectionSnapshot(
            channel=published,
            connected=published is not None and status == ConnectionStatus.CONNECTED,
            error=self._state.last_error,
        )

    def is_transport_error(self, message: str) -> bool:
        return bool(self._transport_error.search(message))

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._subscribers.append(listener)

        def _unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return _unsubscribe

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        channel = self._channel_factory()
        channel.on(ChannelEvent.CONNECT, self._on_connect)
        channel.on(ChannelEvent.DISCONNECT, self._on_disconnect)
        channel.on(ChannelEvent.CONNECT_ERROR, self._on_connect_error)
        self._channel = channel

        await self.try_connect()
        if self._state.status != ConnectionStatus.DEGRADED:
            self._reconnect_timer.start()

    async def stop(self) -> None:
        await self._reconnect_timer.stop()
        channel, self._channel = self._channel, None
        if channel is not None:
            self._detach(channel)
            if channel.connected:
                await channel.disconnect()
        if self._state.status != ConnectionStatus.DEGRADED:
            self._state = replace(self._state, status=ConnectionStatus.DISCONNECTED)
        await self._publish()

    async def try_connect(self) -> None:
        """Connect if there is a token and the channel is idle; otherwise do nothing."""
        channel = self._channel
        if channel is None or self._state.status == ConnectionStatus.DEGRADED:
            return
        if channel.connected or self._connecting:
            return
        try:
            token = await self._tokens.get_token()
        except Exception:
            logger.exception("Token lookup failed, skipping connect attempt")
            return
        if not token:
            return

        self._connecting = True
        self._state = replace(self._state, status=ConnectionStatus.CONNECTING)
        try:
            await channel.connect({"token": token})
        finally:
            self._connecting = False
            if self._state.status == ConnectionStatus.CONNECTING:
                # connect returned without a connect or connect_error event
                self._state = replace(self._state, status=ConnectionStatus.DISCONNECTED)

    async def _on_connect(self, _payload: Any) -> None:
        if self._state.status == ConnectionStatus.DEGRADED:
            return
        self._ever_connected = True
        self._state = ConnectionState(status=ConnectionStatus.CONNECTED)
        logger.info("Channel connected")
        await self._publish()

    async def _on_disconnect(self, reason: Any) -> None:
        if self._state.status == ConnectionStatus.DEGRADED:
            return
        self._state = replace(self._state, status=ConnectionStatus.DISCONNECTED)
        logger.info("Channel disconnected: %s", reason)
        await self._publish()

    async def _on_connect_error(self, error: Any) -> None:
        if self._state.status == ConnectionStatus.DEGRADED:
            return
        message = str(error) if error is not None else "unknown connect error"
        transport = self.is_transport_error(message)
        failures = self._state.transport_failure_count + (1 if transport else 0)
        self._state = ConnectionState(
            status=ConnectionStatus.DISCONNECTED,
            last_error=message,
            transport_failure_count=failures,
        )
        logger.warning(
            "Channel connect error (transport=%s, failures=%d): %s",
            transport, failures, message,
        )

        if transport and failures >= self._failure_threshold:
            await self._degrade()
        else:
            await self._publish()

    async def _degrade(self) -> None:
        self._state = replace(self._state, status=ConnectionStatus.DEGRADED)
        await self._reconnect_timer.stop()
        channel, self._channel = self._channel, None
        if channel is not None:
            self._detach(channel)
            await channel.disconnect()
        logger.warning(
            "Transport failed %d times, realtime disabled for this process; consumers fall back to polling",
            self._state.transport_failure_count,
        )
        await self._publish()

    def _detach(self, channel: DuplexChannel) -> None:
        channel.off(ChannelEvent.CONNECT, self._on_connect)
        channel.off(ChannelEvent.DISCONNECT, self._on_disconnect)
        channel.off(ChannelEvent.CONNECT_ERROR, self._on_connect_error)

    async def _publish(self) -> None:
        """Deliver the current snapshot to every subscriber.

        A listener may trigger a newer publish while it runs; the older
        snapshot is then not delivered to the remaining subscribers.
        """
        self._generation += 1
        generation = self._generation
        snapshot = self.snapshot
        for listener in list(self._subscribers):
            if generation != self._generation:
                return
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Connection subscriber failed")
