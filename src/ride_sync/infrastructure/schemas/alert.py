from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class QueuedAlertSchema(BaseModel):
    driver_id: str = Field(alias="driverId")
    message: str
    include_location: bool = Field(default=False, alias="includeLocation")
    queued_at: int = Field(alias="queuedAt")

    model_config = {"populate_by_name": True}


class EmergencyAlertRequest(BaseModel):
    driver_id: str = Field(serialization_alias="driverId")
    message_template: str = Field(serialization_alias="messageTemplate")
    include_location: bool = Field(default=False, serialization_alias="includeLocation")
    bypass_2fa: bool = Field(default=True, serialization_alias="bypass2fa")
    priority: str = "emergency"


class EmergencyAlertResponse(BaseModel):
    recipients: list[str] = []

    @field_validator("recipients", mode="before")
    @classmethod
    def _coerce_recipients(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(r) for r in v]
