"""Per-tick vehicle physics.

A deliberately simplified deterministic model. Behaviour per tick is
chosen by the three operator switches with precedence
engine off > charging > brake hold > driving, evaluated fresh every
tick from the current state.
"""

from __future__ import annotations

from pyvehsim._constants import (
    BATTERY_LOW_PCT,
    BATTERY_MAX_PCT,
    BATTERY_MIN_PCT,
    BATTERY_TEMP_MAX_C,
    BATTERY_TEMP_MIN_C,
    BATTERY_TEMP_SPAN_C,
    CHARGE_COOLING_C_PER_TICK,
    CHARGE_RATE_PCT_PER_S,
    CHARGING_POWER_KW,
    CHECK_ENGINE_TEMP_C,
    MAX_POWER_KW,
    MAX_RPM,
    MOTOR_SPEED_MAX,
    MOTOR_WARNING_RPM,
    NEUTRAL_GEAR,
)
from pyvehsim.models.vehicle_state import VehicleState


def gear_ratio(speed: int, engine_on: bool = True) -> str:
    """Display gear ratio for a motor speed, e.g. ``"1.5/3.0"``."""
    if speed == 0 or not engine_on:
        return NEUTRAL_GEAR
    ratio = 1 + (speed - 1) * 0.5
    return f"{ratio:.1f}/{ratio * 2:.1f}"


def update_warnings(state: VehicleState) -> None:
    state.battery_low = state.battery_percentage < BATTERY_LOW_PCT
    state.motor_warning = state.rpm > MOTOR_WARNING_RPM
    state.check_engine = state.battery_temperature > CHECK_ENGINE_TEMP_C


def _idle(state: VehicleState, power: float = 0.0) -> None:
    state.power = power
    state.rpm = 0.0
    state.gear_ratio = NEUTRAL_GEAR


def advance(state: VehicleState, interval_ms: int) -> None:
    """Advance *state* in place by one tick of *interval_ms* milliseconds.

    Warning flags are recomputed on every branch, including engine off.
    """
    dt = interval_ms / 1000

    if not state.engine_on:
        _idle(state)
        state.motor_speed = 0
    elif state.is_charging:
        _idle(state, CHARGING_POWER_KW)
        state.battery_percentage = min(BATTERY_MAX_PCT, state.battery_percentage + CHARGE_RATE_PCT_PER_S * dt)
        state.battery_temperature = max(BATTERY_TEMP_MIN_C, state.battery_temperature - CHARGE_COOLING_C_PER_TICK)
    elif not state.brake_hold:
        speed_factor = state.motor_speed / MOTOR_SPEED_MAX
        state.rpm = speed_factor * MAX_RPM
        state.power = speed_factor * MAX_POWER_KW
        state.gear_ratio = gear_ratio(state.motor_speed, state.engine_on)
        # Speed 1 drains 1 %/s, linear in speed.
        drain = state.motor_speed * dt
        state.battery_percentage = max(BATTERY_MIN_PCT, state.battery_percentage - drain)
        state.battery_temperature = min(BATTERY_TEMP_MAX_C, BATTERY_TEMP_MIN_C + speed_factor * BATTERY_TEMP_SPAN_C)
    else:
        _idle(state)

    update_warnings(state)
