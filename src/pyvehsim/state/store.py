"""Durable per-vehicle state stores.

A store keeps the latest published snapshot of each vehicle. Writes are
idempotent insert-or-replace operations keyed by vehicle id.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from pydantic import ConfigDict, field_validator

from pyvehsim.exceptions import VehsimStorageError
from pyvehsim.models._base import VehsimBaseModel
from pyvehsim.models.vehicle_state import VehicleState

_logger = logging.getLogger(__name__)


class PersistedState(VehsimBaseModel):
    """The stored record of one vehicle."""

    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    state: VehicleState
    last_updated: datetime

    @field_validator("vehicle_id")
    @classmethod
    def _vehicle_id_non_empty(cls, value: str) -> str:
        vehicle_id = value.strip()
        if not vehicle_id:
            raise ValueError("vehicle_id must be non-empty")
        return vehicle_id

    @field_validator("last_updated")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class StateStore(Protocol):
    """What the simulation engine needs from durable storage."""

    async def upsert(self, vehicle_id: str, snapshot: VehicleState, timestamp: datetime) -> None:
        """Insert or replace the snapshot stored for *vehicle_id*."""

    async def get(self, vehicle_id: str) -> PersistedState | None:
        """Return the stored record for *vehicle_id*, if any."""


class InMemoryStateStore:
    """Process-local store; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._records: dict[str, PersistedState] = {}
        self.writes = 0

    async def upsert(self, vehicle_id: str, snapshot: VehicleState, timestamp: datetime) -> None:
        self._records[vehicle_id] = PersistedState(
            vehicle_id=vehicle_id,
            state=snapshot.model_copy(),
            last_updated=timestamp,
        )
        self.writes += 1

    async def get(self, vehicle_id: str) -> PersistedState | None:
        return self._records.get(vehicle_id)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS vehicle_state (
    vehicle_id TEXT PRIMARY KEY,
    state_json TEXT NOT NULL,
    last_updated TEXT NOT NULL
);
"""

_UPSERT = """
INSERT INTO vehicle_state (vehicle_id, state_json, last_updated)
VALUES (?, ?, ?)
ON CONFLICT(vehicle_id) DO UPDATE SET
    state_json = excluded.state_json,
    last_updated = excluded.last_updated
"""


class SqliteStateStore:
    """SQLite-backed store, one row per vehicle.

    The snapshot is stored as its camelCase JSON payload. Blocking sqlite
    calls run in a worker thread so the event loop driving the ticks
    never waits on disk.

    Usage::

        async with SqliteStateStore("vehicles.db") as store:
            engine = SimulationEngine("vehicle-1", store=store)
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        # One connection shared across worker threads; writes must not interleave.
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> SqliteStateStore:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        """Connect and create the schema if needed."""
        if self._conn is not None:
            return
        self._conn = await asyncio.to_thread(self._connect)
        _logger.debug("State database opened path=%s", self._db_path)

    def _connect(self) -> sqlite3.Connection:
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.executescript(_SCHEMA)
            conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise VehsimStorageError(f"Cannot open state database {self._db_path}: {exc}") from exc
        return conn

    async def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        async with self._lock:
            await asyncio.to_thread(conn.close)
        _logger.debug("State database closed path=%s", self._db_path)

    def _require_conn(self, vehicle_id: str) -> sqlite3.Connection:
        if self._conn is None:
            raise VehsimStorageError(
                "State database not open. Use 'async with SqliteStateStore(...)'",
                vehicle_id=vehicle_id,
            )
        return self._conn

    async def upsert(self, vehicle_id: str, snapshot: VehicleState, timestamp: datetime) -> None:
        conn = self._require_conn(vehicle_id)
        state_json = json.dumps(snapshot.to_payload(), separators=(",", ":"))
        params = (vehicle_id, state_json, timestamp.isoformat())

        def _write() -> None:
            with conn:
                conn.execute(_UPSERT, params)

        async with self._lock:
            try:
                await asyncio.to_thread(_write)
            except sqlite3.Error as exc:
                raise VehsimStorageError(f"Failed to store state: {exc}", vehicle_id=vehicle_id) from exc

    async def get(self, vehicle_id: str) -> PersistedState | None:
        conn = self._require_conn(vehicle_id)

        def _read() -> tuple[str, str] | None:
            row = conn.execute(
                "SELECT state_json, last_updated FROM vehicle_state WHERE vehicle_id = ?",
                (vehicle_id,),
            ).fetchone()
            return None if row is None else (row[0], row[1])

        async with self._lock:
            try:
                row = await asyncio.to_thread(_read)
            except sqlite3.Error as exc:
                raise VehsimStorageError(f"Failed to read state: {exc}", vehicle_id=vehicle_id) from exc
        if row is None:
            return None
        state_json, last_updated = row
        return PersistedState(
            vehicle_id=vehicle_id,
            state=VehicleState.model_validate(json.loads(state_json)),
            last_updated=datetime.fromisoformat(last_updated),
        )
