"""Single-vehicle simulation engine."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pyvehsim._constants import DEFAULT_TICK_INTERVAL_MS, MOTOR_SPEED_MAX, MOTOR_SPEED_MIN
from pyvehsim.exceptions import VehsimEngineError
from pyvehsim.models.vehicle_state import VehicleState, round_half_up
from pyvehsim.physics import advance
from pyvehsim.state.events import EngineEvent, StateUpdate
from pyvehsim.state.notifier import Notifier
from pyvehsim.state.store import InMemoryStateStore, StateStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _next_deadline(previous: float, now: float, interval: float) -> float:
    """Loop time of the next tick on a fixed cadence.

    A tick that overran a whole interval fires immediately and the cadence
    restarts from *now*; missed ticks are not replayed.
    """
    deadline = previous + interval
    if deadline < now:
        return now
    return deadline


class SimulationEngine:
    """Owns one vehicle's state and advances it on a fixed tick.

    Commands (``set_*``) apply immediately to the in-memory state and never
    raise: out-of-range values are clamped, contextually invalid ones are
    ignored. Every tick advances the physics; if the state differs from the
    last published one, a rounded snapshot is published as
    :attr:`EngineEvent.STATE_UPDATE` and written to the store in a
    background task.

    Everything runs on one asyncio event loop. Commands and :meth:`tick`
    are plain synchronous methods, so a tick never sees a half-applied
    command.

    Usage::

        async with SimulationEngine("vehicle-1", store=store) as engine:
            engine.set_engine(True)
            engine.set_motor_speed(2)
    """

    def __init__(
        self,
        vehicle_id: str,
        *,
        store: StateStore | None = None,
        notifier: Notifier | None = None,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        initial_state: VehicleState | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be positive, got {tick_interval_ms}")
        self._vehicle_id = vehicle_id
        self._store: StateStore = store if store is not None else InMemoryStateStore()
        self._notifier = notifier if notifier is not None else Notifier()
        self._tick_interval_ms = tick_interval_ms
        self._clock = clock
        self._state = initial_state.model_copy() if initial_state is not None else VehicleState.initial()
        # Unrounded JSON of the last published state; None until the first publication.
        self._last_published: str | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._pending_writes: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SimulationEngine:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    @property
    def vehicle_id(self) -> str:
        return self._vehicle_id

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def tick_interval_ms(self) -> int:
        return self._tick_interval_ms

    @property
    def is_running(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def start(self) -> None:
        """Store the current snapshot and start ticking. No-op when running.

        Must be called from a running event loop.
        """
        if self.is_running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise VehsimEngineError("SimulationEngine.start() requires a running event loop") from exc
        self._persist(self._state.rounded(), context="initializing")
        self._tick_task = loop.create_task(self._run(), name=f"pyvehsim-tick-{self._vehicle_id}")
        _logger.debug("Simulation started vehicle_id=%s interval_ms=%d", self._vehicle_id, self._tick_interval_ms)

    def stop(self) -> None:
        """Stop ticking. In-flight writes are left to finish on their own."""
        task = self._tick_task
        self._tick_task = None
        if task is None:
            return
        task.cancel()
        _logger.debug("Simulation stopped vehicle_id=%s", self._vehicle_id)

    async def aclose(self) -> None:
        """Stop ticking and wait for in-flight writes."""
        task = self._tick_task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.wait_for_writes()

    async def wait_for_writes(self) -> None:
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._tick_interval_ms / 1000
        deadline = loop.time()
        while True:
            deadline = _next_deadline(deadline, loop.time(), interval)
            await asyncio.sleep(deadline - loop.time())
            try:
                self.tick()
            except Exception:
                _logger.exception("Simulation tick failed vehicle_id=%s", self._vehicle_id)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Advance the physics by one interval and publish if changed.

        Returns ``True`` when a state update was published.

        Outside a running event loop the store write is skipped; the change
        still counts as published. :meth:`start` writes the current snapshot,
        so the store catches up once the engine runs on a loop.
        """
        advance(self._state, self._tick_interval_ms)

        serialized = self._state.model_dump_json()
        if serialized == self._last_published:
            return False

        snapshot = self._state.rounded()
        self._notifier.publish(
            EngineEvent.STATE_UPDATE,
            StateUpdate(vehicle_id=self._vehicle_id, state=snapshot, published_at=self._clock()),
        )
        self._last_published = serialized
        self._persist(snapshot, context="updating")
        return True

    def _persist(self, snapshot: VehicleState, *, context: str) -> None:
        """Fire-and-forget upsert; failures are logged, never raised."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running event loop; skipped %s vehicle state", context)
            return
        task = loop.create_task(self._upsert(snapshot, self._clock(), context))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _upsert(self, snapshot: VehicleState, timestamp: datetime, context: str) -> None:
        try:
            await self._store.upsert(self._vehicle_id, snapshot, timestamp)
        except Exception:
            _logger.warning("Error %s vehicle state vehicle_id=%s", context, self._vehicle_id, exc_info=True)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_motor_speed(self, speed: Any) -> None:
        """Select motor speed 0-4.

        Ignored while charging, with the engine off, or with brake hold
        engaged. Values are rounded and clamped; non-numeric and non-finite
        values are ignored.
        """
        state = self._state
        if state.is_charging or not state.engine_on or state.brake_hold:
            return
        try:
            value = float(speed)
        except (TypeError, ValueError):
            _logger.debug("Ignoring non-numeric motor speed %r", speed)
            return
        if not math.isfinite(value):
            _logger.debug("Ignoring non-finite motor speed %r", speed)
            return
        state.motor_speed = max(MOTOR_SPEED_MIN, min(MOTOR_SPEED_MAX, round_half_up(value)))

    def set_charging(self, charging: bool) -> None:
        charging = bool(charging)
        self._state.is_charging = charging
        if charging:
            self._state.motor_speed = 0

    def set_engine(self, on: bool) -> None:
        """Master switch. Turning off also stops the motor and charging."""
        on = bool(on)
        self._state.engine_on = on
        if not on:
            self._state.motor_speed = 0
            self._state.is_charging = False

    def set_brake_hold(self, active: bool) -> None:
        active = bool(active)
        self._state.brake_hold = active
        if active:
            self._state.motor_speed = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self) -> VehicleState:
        """Rounded copy of the current state."""
        return self._state.rounded()
