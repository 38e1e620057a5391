"""Run the vehicle simulator with its HTTP control server.

Configuration comes from ``VEHSIM_*`` environment variables
(see :class:`pyvehsim.config.SimulatorConfig`); command-line flags
override them.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import AsyncIterator
from typing import Any

from aiohttp import web

from pyvehsim.config import SimulatorConfig
from pyvehsim.engine import SimulationEngine
from pyvehsim.exceptions import VehsimConfigError
from pyvehsim.server import create_app
from pyvehsim.state.store import InMemoryStateStore, SqliteStateStore, StateStore

_logger = logging.getLogger("pyvehsim")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m pyvehsim",
        description="Simulate a vehicle's electrical/mechanical subsystem behind an HTTP control API.",
    )
    parser.add_argument("--host", help="Bind address (env: VEHSIM_HOST)")
    parser.add_argument("--port", type=int, help="Listen port (env: VEHSIM_PORT or PORT)")
    parser.add_argument("--vehicle-id", help="Simulated vehicle identifier (env: VEHSIM_VEHICLE_ID)")
    parser.add_argument("--tick-interval-ms", type=int, help="Physics tick in ms (env: VEHSIM_TICK_INTERVAL_MS)")
    parser.add_argument("--db", dest="db_path", help="SQLite state database; omit for in-memory (env: VEHSIM_DB_PATH)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SimulatorConfig:
    overrides: dict[str, Any] = {
        name: value
        for name in ("host", "port", "vehicle_id", "tick_interval_ms", "db_path")
        if (value := getattr(args, name)) is not None
    }
    return SimulatorConfig.from_env(**overrides)


def build_app(config: SimulatorConfig) -> web.Application:
    """Wire store, engine and server for *config*."""
    store: StateStore = InMemoryStateStore()
    sqlite_store: SqliteStateStore | None = None
    if config.db_path:
        sqlite_store = SqliteStateStore(config.db_path)
        store = sqlite_store

    engine = SimulationEngine(config.vehicle_id, store=store, tick_interval_ms=config.tick_interval_ms)
    app = create_app(engine, cors_enabled=config.cors_enabled)

    if sqlite_store is not None:

        async def _store_ctx(_app: web.Application) -> AsyncIterator[None]:
            await sqlite_store.open()
            yield
            await sqlite_store.close()

        # The store must be open before the engine writes its first snapshot.
        app.cleanup_ctx.insert(0, _store_ctx)
    return app


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = build_config(args)
    except VehsimConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _logger.info(
        "Simulating vehicle_id=%s tick=%dms store=%s",
        config.vehicle_id,
        config.tick_interval_ms,
        config.db_path or "memory",
    )
    web.run_app(build_app(config), host=config.host, port=config.port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
