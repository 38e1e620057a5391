"""Custom exception hierarchy for pyvehsim."""

from __future__ import annotations


class VehsimError(Exception):
    """Base exception for all pyvehsim errors."""


class VehsimConfigError(VehsimError):
    """Invalid or missing configuration."""


class VehsimEngineError(VehsimError):
    """Simulation engine used outside its lifecycle (e.g. no running loop)."""


class VehsimStorageError(VehsimError):
    """State store failure (connection, schema, write).

    The engine treats these as non-fatal: they are logged and the
    simulation keeps ticking with its in-memory state.
    """

    def __init__(self, message: str, *, vehicle_id: str = "") -> None:
        self.vehicle_id = vehicle_id
        super().__init__(message)
