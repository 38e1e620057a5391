"""Pydantic request models for the HTTP control surface.

These models provide a consistent "validate -> normalize -> execute" flow
for :mod:`pyvehsim.server`. They only check the *shape* of a body; range
handling (clamping, ignoring) stays with the engine commands.
"""

from __future__ import annotations

from pydantic import ConfigDict, Field

from pyvehsim.models._base import VehsimBaseModel


class ControlRequest(VehsimBaseModel):
    """Base for control request bodies."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )


class MotorSpeedRequest(ControlRequest):
    speed: float = Field(allow_inf_nan=False)


class ChargingRequest(ControlRequest):
    is_charging: bool


class EngineRequest(ControlRequest):
    is_on: bool


class BrakeHoldRequest(ControlRequest):
    is_active: bool


class TemperatureRequest(ControlRequest):
    show_details: bool = False
