from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

EventHandler = Callable[[Any], Awaitable[None] | None]


class DuplexChannel(Protocol):
    """Bidirectional event channel.

    Besides server events the channel raises its own lifecycle events:
    ``connect``, ``disconnect`` (payload: reason) and ``connect_error``
    (payload: error message). Connect failures are reported through
    ``connect_error`` and never raised from ``connect``.
    """

    @property
    def connected(self) -> bool: ...

    async def connect(self, credentials: dict[str, str]) -> None: ...

    async def disconnect(self) -> None: ...

    async def emit(self, event: str, payload: dict[str, Any]) -> None: ...

    def on(self, event: str, handler: EventHandler) -> None: ...

    def off(self, event: str, handler: EventHandler) -> None: ...
