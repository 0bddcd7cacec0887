from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ride_sync.infrastructure.schemas.common import ref_id


class RideSummarySchema(BaseModel):
    """Only the fields the sync layer reads; the rest of the ride is ignored."""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    status: str = ""
    driver_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("driverId", "driver", "acceptedBy"),
    )

    @field_validator("id", "driver_id", mode="before")
    @classmethod
    def _coerce_ref(cls, v: Any) -> str | None:
        return ref_id(v)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> str:
        return "" if v is None else str(v)
