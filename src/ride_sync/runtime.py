from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import redis.asyncio as aioredis

from ride_sync.config import Settings, settings as default_settings
from ride_sync.domain.value_objects.enums import SenderRole
from ride_sync.infrastructure.auth.token_provider import StoredTokenProvider
from ride_sync.infrastructure.http.api_client import HttpRideApi, build_client
from ride_sync.infrastructure.notify.log_notifier import LoggingNotifier
from ride_sync.infrastructure.storage.redis_store import RedisKeyValueStore
from ride_sync.infrastructure.ws.channel import WebSocketChannel
from ride_sync.infrastructure.ws.manager import ConnectionManager
from ride_sync.workers.alert_dispatcher import AlertDispatcher
from ride_sync.workers.chat_room import ChatRoom
from ride_sync.workers.notification_feed import NotificationFeed

logger = logging.getLogger(__name__)


@dataclass
class SyncRuntime:
    store: RedisKeyValueStore
    tokens: StoredTokenProvider
    api: HttpRideApi
    connection: ConnectionManager
    notifications: NotificationFeed
    alerts: AlertDispatcher
    chat: ChatRoom | None = None


@asynccontextmanager
async def lifespan(settings: Settings = default_settings) -> AsyncIterator[SyncRuntime]:
    """Startup / shutdown lifecycle."""
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    logger.info("Redis connection pool created")
    store = RedisKeyValueStore(redis, prefix=settings.STORAGE_PREFIX)

    tokens = StoredTokenProvider(store, key=settings.AUTH_TOKEN_KEY)
    if settings.AUTH_TOKEN:
        await tokens.set_token(settings.AUTH_TOKEN)

    api = HttpRideApi(
        build_client(tokens, base_url=settings.API_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
    )
    connection = ConnectionManager(
        lambda: WebSocketChannel(
            settings.SOCKET_URL,
            connect_timeout=settings.CONNECT_TIMEOUT,
            heartbeat_seconds=settings.HEARTBEAT_SECONDS,
        ),
        tokens,
        reconnect_interval=settings.RECONNECT_INTERVAL,
        failure_threshold=settings.TRANSPORT_FAILURE_THRESHOLD,
        transport_error_pattern=settings.TRANSPORT_ERROR_PATTERN,
    )
    notifications = NotificationFeed(
        store, api, connection,
        user_id=settings.USER_ID,
        poll_interval=settings.NOTIFICATION_POLL_INTERVAL,
    )
    alerts = AlertDispatcher(
        api, store,
        flush_interval=settings.ALERT_FLUSH_INTERVAL,
        queue_key=settings.ALERT_QUEUE_KEY,
    )
    chat = None
    if settings.RIDE_ID:
        chat = ChatRoom(
            api, connection, LoggingNotifier(), tokens,
            ride_id=settings.RIDE_ID,
            user_role=SenderRole(settings.USER_ROLE),
            poll_interval=settings.MESSAGE_POLL_INTERVAL,
            typing_idle=settings.TYPING_IDLE_SECONDS,
            max_length=settings.MESSAGE_MAX_LENGTH,
        )

    runtime = SyncRuntime(store, tokens, api, connection, notifications, alerts, chat)
    try:
        await connection.start()
        await notifications.start()
        alerts.start()
        if chat is not None:
            await chat.open()
        yield runtime
    finally:
        if chat is not None:
            await chat.close()
        await alerts.stop()
        await notifications.stop()
        await connection.stop()
        await api.aclose()
        await redis.aclose()
        logger.info("Redis connection pool closed")
