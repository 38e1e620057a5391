"""Engine event names and payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from pyvehsim._constants import STATE_UPDATE_EVENT
from pyvehsim.models._base import VehsimBaseModel
from pyvehsim.models.vehicle_state import VehicleState


class EngineEvent(StrEnum):
    STATE_UPDATE = STATE_UPDATE_EVENT


class StateUpdate(VehsimBaseModel):
    """A published change of vehicle state.

    ``state`` is the rounded snapshot, the same shape ``get_state()``
    returns.
    """

    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    state: VehicleState
    published_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("published_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_message(self) -> dict[str, Any]:
        """Websocket frame: ``{"action": "stateUpdate", "data": {...}}``."""
        return {"action": EngineEvent.STATE_UPDATE.value, "data": self.state.to_payload()}
