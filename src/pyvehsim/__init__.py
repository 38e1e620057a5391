"""pyvehsim - Async single-vehicle electrical/mechanical simulator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyvehsim")
except PackageNotFoundError:
    __version__ = "0+local"
from pyvehsim.config import SimulatorConfig
from pyvehsim.engine import SimulationEngine
from pyvehsim.exceptions import (
    VehsimConfigError,
    VehsimEngineError,
    VehsimError,
    VehsimStorageError,
)
from pyvehsim.models import VehicleState
from pyvehsim.state.events import EngineEvent, StateUpdate
from pyvehsim.state.notifier import Notifier
from pyvehsim.state.store import InMemoryStateStore, PersistedState, SqliteStateStore, StateStore

__all__ = [
    "__version__",
    "EngineEvent",
    "InMemoryStateStore",
    "Notifier",
    "PersistedState",
    "SimulationEngine",
    "SimulatorConfig",
    "SqliteStateStore",
    "StateStore",
    "StateUpdate",
    "VehicleState",
    "VehsimConfigError",
    "VehsimEngineError",
    "VehsimError",
    "VehsimStorageError",
]
