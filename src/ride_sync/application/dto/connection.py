from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ride_sync.domain.value_objects.enums import ConnectionStatus

if TYPE_CHECKING:
    from ride_sync.application.ports.channel import DuplexChannel


@dataclass(frozen=True, slots=True)
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    last_error: str | None = None
    transport_failure_count: int = 0


@dataclass(frozen=True, slots=True)
class ConnectionSnapshot:
    """What consumers of the connection manager get to see."""

    channel: DuplexChannel | None = None
    connected: bool = False
    error: str | None = None

    @property
    def realtime(self) -> bool:
        return self.channel is not None and self.connected
