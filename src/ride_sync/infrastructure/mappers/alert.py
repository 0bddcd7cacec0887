from __future__ import annotations

from ride_sync.application.dto.alert import AlertPayload
from ride_sync.domain.entities.alert import QueuedAlert
from ride_sync.infrastructure.schemas.alert import EmergencyAlertRequest, QueuedAlertSchema


def schema_to_entity(schema: QueuedAlertSchema) -> QueuedAlert:
    return QueuedAlert(
        driver_id=schema.driver_id,
        message=schema.message,
        include_location=schema.include_location,
        queued_at=schema.queued_at,
    )


def entity_to_schema(entity: QueuedAlert) -> QueuedAlertSchema:
    return QueuedAlertSchema(
        driver_id=entity.driver_id,
        message=entity.message,
        include_location=entity.include_location,
        queued_at=entity.queued_at,
    )


def entity_to_payload(entity: QueuedAlert) -> AlertPayload:
    return AlertPayload(
        driver_id=entity.driver_id,
        message=entity.message,
        include_location=entity.include_location,
    )


def payload_to_request(payload: AlertPayload) -> EmergencyAlertRequest:
    return EmergencyAlertRequest(
        driver_id=payload.driver_id,
        message_template=payload.message,
        include_location=payload.include_location,
    )
