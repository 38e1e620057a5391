"""Internal constants shared across the library."""

DEFAULT_VEHICLE_ID = "vehicle-1"
DEFAULT_TICK_INTERVAL_MS = 100

STATE_UPDATE_EVENT = "stateUpdate"
NEUTRAL_GEAR = "N/N"

# ------------------------------------------------------------------
# Operator ranges
# ------------------------------------------------------------------

MOTOR_SPEED_MIN = 0
MOTOR_SPEED_MAX = 4

# ------------------------------------------------------------------
# Physical bounds
# ------------------------------------------------------------------

MAX_RPM = 800.0
MAX_POWER_KW = 1000.0

BATTERY_MIN_PCT = 0.0
BATTERY_MAX_PCT = 100.0

BATTERY_TEMP_MIN_C = 25.0
BATTERY_TEMP_MAX_C = 80.0
# Temperature rise at full speed above the ambient floor (25 + 55 = 80).
BATTERY_TEMP_SPAN_C = BATTERY_TEMP_MAX_C - BATTERY_TEMP_MIN_C

CHARGING_POWER_KW = -50.0
CHARGE_RATE_PCT_PER_S = 2.0
CHARGE_COOLING_C_PER_TICK = 0.1

# ------------------------------------------------------------------
# Warning thresholds (strict comparisons)
# ------------------------------------------------------------------

MOTOR_WARNING_RPM = 700.0
CHECK_ENGINE_TEMP_C = 75.0
BATTERY_LOW_PCT = 20.0
