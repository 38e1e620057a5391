"""Simulator configuration for pyvehsim."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyvehsim._constants import DEFAULT_TICK_INTERVAL_MS, DEFAULT_VEHICLE_ID
from pyvehsim.exceptions import VehsimConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(env_key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise VehsimConfigError(f"{env_key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SimulatorConfig:
    """Simulator configuration.

    Parameters
    ----------
    vehicle_id : str
        Identifier of the simulated vehicle. Used as the state store key.
    tick_interval_ms : int
        Interval between physics ticks in milliseconds.
    db_path : str or None
        Path of the SQLite state database. ``None`` keeps persisted state
        in memory only.
    host : str
        Interface the HTTP control server binds to.
    port : int
        TCP port of the HTTP control server.
    cors_enabled : bool
        Add permissive CORS headers to every HTTP response.
    """

    vehicle_id: str = DEFAULT_VEHICLE_ID
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    db_path: str | None = None
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    cors_enabled: bool = True

    def __post_init__(self) -> None:
        if not self.vehicle_id.strip():
            raise VehsimConfigError("vehicle_id must be non-empty")
        if self.tick_interval_ms <= 0:
            raise VehsimConfigError(f"tick_interval_ms must be positive, got {self.tick_interval_ms}")
        if not 0 <= self.port <= 65535:
            raise VehsimConfigError(f"port must be between 0 and 65535, got {self.port}")

    @classmethod
    def from_env(cls, **overrides: Any) -> SimulatorConfig:
        """Create configuration from environment variables.

        Reads optional ``VEHSIM_*`` variables. ``PORT`` is honoured as a
        fallback for ``VEHSIM_PORT`` so the server works on platforms that
        inject it. Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SimulatorConfig
            Populated configuration.

        Raises
        ------
        VehsimConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "VEHSIM_VEHICLE_ID": "vehicle_id",
            "VEHSIM_DB_PATH": "db_path",
            "VEHSIM_HOST": "host",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        interval_env = env.get("VEHSIM_TICK_INTERVAL_MS")
        if interval_env is not None and "tick_interval_ms" not in overrides:
            config_kwargs["tick_interval_ms"] = _env_int("VEHSIM_TICK_INTERVAL_MS", interval_env)

        port_key = "VEHSIM_PORT" if env.get("VEHSIM_PORT") is not None else "PORT"
        port_env = env.get(port_key)
        if port_env is not None and "port" not in overrides:
            config_kwargs["port"] = _env_int(port_key, port_env)

        if "cors_enabled" not in overrides:
            config_kwargs["cors_enabled"] = _env_bool(env.get("VEHSIM_CORS_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
