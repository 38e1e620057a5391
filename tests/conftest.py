from __future__ import annotations

from datetime import datetime

import pytest

from pyvehsim.exceptions import VehsimStorageError
from pyvehsim.models.vehicle_state import VehicleState


class RecordingStore:
    """StateStore double that remembers every upsert."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, VehicleState, datetime]] = []

    async def upsert(self, vehicle_id: str, snapshot: VehicleState, timestamp: datetime) -> None:
        self.calls.append((vehicle_id, snapshot, timestamp))

    async def get(self, vehicle_id: str) -> None:
        return None


class FailingStore:
    def __init__(self) -> None:
        self.attempts = 0

    async def upsert(self, vehicle_id: str, snapshot: VehicleState, timestamp: datetime) -> None:
        self.attempts += 1
        raise VehsimStorageError("database unavailable", vehicle_id=vehicle_id)

    async def get(self, vehicle_id: str) -> None:
        return None


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()
