"""Vehicle state snapshot model."""

from __future__ import annotations

import math

from pydantic import Field

from pyvehsim._constants import (
    BATTERY_MAX_PCT,
    BATTERY_TEMP_MIN_C,
    MOTOR_SPEED_MAX,
    MOTOR_SPEED_MIN,
    NEUTRAL_GEAR,
)
from pyvehsim.models._base import VehsimBaseModel

# Live state carries floats; rounded snapshots carry ints.
Reading = float | int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity.

    ``round()`` uses banker's rounding (``round(2.5) == 2``); gauge
    readings always go up on a half (``-0.5 -> 0``, ``2.5 -> 3``).
    """
    return math.floor(value + 0.5)


class VehicleState(VehsimBaseModel):
    """Physical and status quantities of one vehicle.

    Attributes map to camelCase on the wire (``battery_percentage`` ->
    ``batteryPercentage``). Instances owned by the engine are mutated in
    place; everything handed out is a copy.
    """

    power: Reading = 0.0
    """Power output (+) or intake (-) in kW."""
    rpm: Reading = 0.0
    battery_percentage: Reading = BATTERY_MAX_PCT
    battery_temperature: Reading = BATTERY_TEMP_MIN_C
    """Battery temperature in °C."""
    gear_ratio: str = NEUTRAL_GEAR
    parking_brake: bool = False
    check_engine: bool = False
    motor_warning: bool = False
    battery_low: bool = False
    is_charging: bool = False
    motor_speed: int = Field(default=0, ge=MOTOR_SPEED_MIN, le=MOTOR_SPEED_MAX)
    engine_on: bool = False
    brake_hold: bool = False

    @classmethod
    def initial(cls) -> VehicleState:
        """Snapshot every vehicle starts from: engine off, full and cool battery."""
        return cls()

    def rounded(self) -> VehicleState:
        """Copy with the four analogue readings rounded to integers."""
        return self.model_copy(
            update={
                "power": round_half_up(self.power),
                "rpm": round_half_up(self.rpm),
                "battery_percentage": round_half_up(self.battery_percentage),
                "battery_temperature": round_half_up(self.battery_temperature),
            }
        )
