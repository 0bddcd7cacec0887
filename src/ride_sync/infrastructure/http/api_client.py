"""HTTP side of the ride backend, as consumed by the sync layer."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as SchemaError

from ride_sync.application.dto.alert import AlertPayload
from ride_sync.application.dto.message import SendResult
from ride_sync.application.exceptions import DeliveryError
from ride_sync.application.ports.auth import TokenProvider
from ride_sync.config import settings
from ride_sync.domain.entities.message import ChatMessage
from ride_sync.domain.entities.ride import RideSummary
from ride_sync.domain.value_objects.enums import MessageType
from ride_sync.infrastructure.http.auth import BearerTokenAuth
from ride_sync.infrastructure.http.correlation_id import attach_correlation_id
from ride_sync.infrastructure.mappers import message as message_mapper
from ride_sync.infrastructure.mappers import ride as ride_mapper
from ride_sync.infrastructure.mappers.alert import payload_to_request
from ride_sync.infrastructure.schemas.alert import EmergencyAlertResponse
from ride_sync.infrastructure.schemas.message import (
    ChatMessageSchema,
    SendMessageRequest,
    SendMessageResponse,
)
from ride_sync.infrastructure.schemas.ride import RideSummarySchema

logger = logging.getLogger(__name__)


def build_client(
    tokens: TokenProvider,
    *,
    base_url: str = settings.API_URL,
    timeout: float = settings.HTTP_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        auth=BearerTokenAuth(tokens),
        headers={"Content-Type": "application/json"},
        event_hooks={"request": [attach_correlation_id]},
        transport=transport,
    )


def _items(data: Any, *keys: str) -> list[Any]:
    """Accept either a bare list or a list wrapped under one of ``keys``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


class HttpRideApi:
    """Implements application.ports.api.RideApi.

    Transport failures, non-2xx answers and undecodable bodies all surface
    as DeliveryError; callers never see httpx exceptions.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise DeliveryError(
                f"{method} {url} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"{method} {url} failed: {exc}") from exc
        except ValueError as exc:
            raise DeliveryError(f"{method} {url} returned a non-JSON body") from exc

    async def fetch_message_history(self, ride_id: str) -> list[ChatMessage]:
        data = await self._request("GET", "/api/messaging/history", params={"rideId": ride_id})
        messages: list[ChatMessage] = []
        for entry in _items(data, "messages"):
            try:
                schema = ChatMessageSchema.model_validate(entry)
            except SchemaError:
                logger.debug("Skipping malformed history entry for ride %s", ride_id)
                continue
            messages.append(message_mapper.schema_to_entity(schema, default_conversation_id=ride_id))
        return messages

    async def send_message(
        self,
        ride_id: str,
        message: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> SendResult:
        body = SendMessageRequest(ride_id=ride_id, message=message, message_type=message_type)
        data = await self._request(
            "POST", "/api/messaging/send", json=body.model_dump(mode="json", by_alias=True),
        )
        try:
            parsed = SendMessageResponse.model_validate(data)
        except SchemaError as exc:
            raise DeliveryError("Unexpected send response") from exc
        if parsed.message is None:
            return SendResult(success=parsed.success)
        return SendResult(
            success=parsed.success,
            message=message_mapper.schema_to_entity(parsed.message, default_conversation_id=ride_id),
        )

    async def fetch_my_rides(self) -> list[RideSummary]:
        data = await self._request("GET", "/rides/my-rides")
        rides: list[RideSummary] = []
        for entry in _items(data, "rides", "data"):
            try:
                rides.append(ride_mapper.schema_to_entity(RideSummarySchema.model_validate(entry)))
            except SchemaError:
                logger.debug("Skipping malformed ride entry")
        return rides

    async def send_emergency_alert(self, payload: AlertPayload) -> list[str]:
        body = payload_to_request(payload)
        data = await self._request(
            "POST", "/api/emergency/admin/alert", json=body.model_dump(by_alias=True),
        )
        try:
            return EmergencyAlertResponse.model_validate(data).recipients
        except SchemaError as exc:
            raise DeliveryError("Unexpected alert response") from exc
