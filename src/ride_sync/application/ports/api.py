from __future__ import annotations

from typing import Protocol

from ride_sync.application.dto.alert import AlertPayload
from ride_sync.application.dto.message import SendResult
from ride_sync.domain.entities.message import ChatMessage
from ride_sync.domain.entities.ride import RideSummary
from ride_sync.domain.value_objects.enums import MessageType


class RideApi(Protocol):
    async def fetch_message_history(self, ride_id: str) -> list[ChatMessage]: ...

    async def send_message(
        self,
        ride_id: str,
        message: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> SendResult: ...

    async def fetch_my_rides(self) -> list[RideSummary]: ...

    async def send_emergency_alert(self, payload: AlertPayload) -> list[str]:
        """Return the recipients. Raise DeliveryError on any failure."""
        ...
