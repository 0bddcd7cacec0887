from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_URL: str = "https://eyyback.onrender.com"
    SOCKET_URL: str = "wss://eyyback.onrender.com/ws/chat"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    REDIS_URL: str = "redis://localhost:6379/0"
    STORAGE_PREFIX: str = "ride_sync:"

    AUTH_TOKEN_KEY: str = "token"
    AUTH_TOKEN: str | None = None
    USER_ID: str | None = None
    RIDE_ID: str | None = None
    USER_ROLE: Literal["driver", "commuter"] = "commuter"

    RECONNECT_INTERVAL: float = 10.0
    TRANSPORT_FAILURE_THRESHOLD: int = 2
    TRANSPORT_ERROR_PATTERN: str = (
        r"websocket error|xhr poll error|xhr post error|transport (error|close)|handshake|upgrade"
    )
    CONNECT_TIMEOUT: float = 10.0
    HEARTBEAT_SECONDS: int = 30

    NOTIFICATION_POLL_INTERVAL: float = 5.0
    MESSAGE_POLL_INTERVAL: float = 3.0
    TYPING_IDLE_SECONDS: float = 1.0
    MESSAGE_MAX_LENGTH: int = 5000

    ALERT_FLUSH_INTERVAL: float = 15.0
    ALERT_QUEUE_KEY: str = "emergency:queue"

    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
