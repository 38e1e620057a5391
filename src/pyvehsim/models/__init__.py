"""Data models for vehicle state and control requests."""

from pyvehsim.models._base import VehsimBaseModel
from pyvehsim.models.requests import (
    BrakeHoldRequest,
    ChargingRequest,
    ControlRequest,
    EngineRequest,
    MotorSpeedRequest,
    TemperatureRequest,
)
from pyvehsim.models.vehicle_state import VehicleState, round_half_up

__all__ = [
    "BrakeHoldRequest",
    "ChargingRequest",
    "ControlRequest",
    "EngineRequest",
    "MotorSpeedRequest",
    "TemperatureRequest",
    "VehicleState",
    "VehsimBaseModel",
    "round_half_up",
]
