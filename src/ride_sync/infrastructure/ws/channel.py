"""Duplex channel over a single websocket connection."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, InvalidURI

from ride_sync.application.ports.channel import EventHandler
from ride_sync.config import settings
from ride_sync.domain.value_objects.enums import ChannelEvent
from ride_sync.infrastructure.timers import PeriodicTimer
from ride_sync.infrastructure.ws.protocol import decode_frame, encode_frame

logger = logging.getLogger(__name__)

_REJECTED_STATUSES = {401, 403}


def _with_query(url: str, params: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


class WebSocketChannel:
    """Implements application.ports.channel.DuplexChannel.

    Frames are JSON envelopes ``{"type": ..., "data": {...}}``; the frame
    type is the event name handed to ``on`` handlers. Credentials travel as
    query parameters, which is how the chat endpoint authenticates sockets.
    """

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float = settings.CONNECT_TIMEOUT,
        heartbeat_seconds: float = settings.HEARTBEAT_SECONDS,
    ) -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._handlers: dict[str, list[EventHandler]] = {}
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False
        self._heartbeat = PeriodicTimer("ws-heartbeat", heartbeat_seconds, self._ping)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def connect(self, credentials: dict[str, str]) -> None:
        if self._ws is not None:
            return
        url = _with_query(self._url, credentials)
        try:
            ws = await connect(url, open_timeout=self._connect_timeout)
        except InvalidStatus as exc:
            status = exc.response.status_code
            if status in _REJECTED_STATUSES:
                reason = f"unauthorized: server rejected the socket (HTTP {status})"
            else:
                reason = f"websocket error: unexpected HTTP {status} during handshake"
            await self._dispatch(ChannelEvent.CONNECT_ERROR, reason)
            return
        except (InvalidHandshake, InvalidURI, OSError, TimeoutError) as exc:
            await self._dispatch(ChannelEvent.CONNECT_ERROR, f"websocket error: {exc}")
            return

        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws), name="ws-channel-reader")
        self._heartbeat.start()
        logger.debug("WS connected to %s", self._url)
        await self._dispatch(ChannelEvent.CONNECT, None)

    async def disconnect(self) -> None:
        ws = self._ws
        if ws is None:
            return
        self._closing = True
        reader = self._reader
        try:
            await ws.close()
            if reader is not None and reader is not asyncio.current_task():
                await reader
            await self._heartbeat.stop()
        finally:
            self._closing = False

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None:
            logger.debug("Dropping %s, channel is not connected", event)
            return
        try:
            await ws.send(encode_frame(event, payload))
        except ConnectionClosed:
            logger.debug("Dropping %s, connection closed while sending", event)

    async def _ping(self) -> None:
        await self.emit(ChannelEvent.PING, {})

    async def _read_loop(self, ws: ClientConnection) -> None:
        reason = "io server disconnect"
        try:
            async for raw in ws:
                frame = decode_frame(raw)
                if frame is None:
                    logger.warning("Dropping malformed WS frame")
                    continue
                await self._dispatch(frame.type, frame.data)
        except ConnectionClosed as exc:
            reason = f"transport close: {exc}"
        finally:
            if self._closing:
                reason = "io client disconnect"
            self._ws = None
            self._reader = None
            self._heartbeat.cancel()
            logger.debug("WS disconnected (%s)", reason)
        await self._dispatch(ChannelEvent.DISCONNECT, reason)

    async def _dispatch(self, event: str, payload: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event)
