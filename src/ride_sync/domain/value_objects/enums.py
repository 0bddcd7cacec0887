from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class NotificationCategory(StrEnum):
    URGENT = "urgent"
    INFORMATIONAL = "informational"
    UPDATES = "updates"


class MessageType(StrEnum):
    TEXT = "text"
    SYSTEM = "system"


class SenderRole(StrEnum):
    DRIVER = "driver"
    COMMUTER = "commuter"


class ChannelEvent(StrEnum):
    # lifecycle, raised by the channel itself
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    CONNECT_ERROR = "connect_error"

    # server -> client
    NOTIFICATION = "notification"
    MESSAGE_RECEIVED = "messageReceived"
    USER_TYPING = "userTyping"
    PONG = "pong"

    # client -> server
    JOIN_ROOM = "joinConversationRoom"
    LEAVE_ROOM = "leaveConversationRoom"
    TYPING_START = "typingStart"
    TYPING_STOP = "typingStop"
    MESSAGE_READ = "messageRead"
    PING = "ping"
