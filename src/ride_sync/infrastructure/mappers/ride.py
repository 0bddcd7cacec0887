from __future__ import annotations

from ride_sync.domain.entities.ride import RideSummary
from ride_sync.infrastructure.schemas.ride import RideSummarySchema


def schema_to_entity(schema: RideSummarySchema) -> RideSummary:
    return RideSummary(id=schema.id, status=schema.status, driver_id=schema.driver_id)
