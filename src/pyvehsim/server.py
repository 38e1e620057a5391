"""HTTP and websocket control surface for a simulation engine."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

from aiohttp import WSMsgType, web
from pydantic import ValidationError

from pyvehsim.engine import SimulationEngine
from pyvehsim.models.requests import (
    BrakeHoldRequest,
    ChargingRequest,
    ControlRequest,
    EngineRequest,
    MotorSpeedRequest,
    TemperatureRequest,
)
from pyvehsim.state.events import EngineEvent, StateUpdate

_logger = logging.getLogger(__name__)

ENGINE_KEY = web.AppKey("engine", SimulationEngine)
CORS_KEY = web.AppKey("cors_enabled", bool)

RequestT = TypeVar("RequestT", bound=ControlRequest)

_ENDPOINTS: dict[str, str] = {
    "/": "This info",
    "/state": "Current vehicle state",
    "/ws": "State updates (websocket)",
    "/control/motorSpeed": "Set motor speed (POST)",
    "/control/charging": "Set charging state (POST)",
    "/control/engine": "Set engine state (POST)",
    "/control/brakeHold": "Set brake hold state (POST)",
    "/control/temperature": "Show temperature details (POST)",
}

_CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"status": "error", "message": message}, status=status)


def _state_response(engine: SimulationEngine) -> web.Response:
    return web.json_response(engine.get_state().to_payload())


def _describe_error(err: Any) -> str:
    location = ".".join(str(part) for part in err["loc"]) or "body"
    return f"{location}: {err['msg']}"


async def _parse_body(request: web.Request, model: type[RequestT]) -> RequestT:
    """Validate a JSON body, raising ``HTTPBadRequest`` with a JSON error body."""
    try:
        body = await request.json()
    except ValueError as exc:
        # JSONDecodeError for bad syntax, UnicodeDecodeError for undecodable bytes.
        reason = exc.msg if isinstance(exc, json.JSONDecodeError) else "body is not valid UTF-8"
        raise web.HTTPBadRequest(
            text=json.dumps({"status": "error", "message": f"Invalid JSON body: {reason}"}),
            content_type="application/json",
        ) from exc
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        message = "; ".join(_describe_error(err) for err in exc.errors())
        raise web.HTTPBadRequest(
            text=json.dumps({"status": "error", "message": message}),
            content_type="application/json",
        ) from exc


@web.middleware
async def _cors_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    cors_enabled = request.app[CORS_KEY]
    if request.method == "OPTIONS" and cors_enabled:
        response: web.StreamResponse = web.Response()
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            if cors_enabled:
                exc.headers.update(_CORS_HEADERS)
            raise
    if cors_enabled and not response.prepared:
        response.headers.update(_CORS_HEADERS)
    return response


@web.middleware
async def _error_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as exc:
        _logger.error("Error in %s %s", request.method, request.path, exc_info=True)
        return _error(500, str(exc) or "Internal error")


async def _index(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "status": "ok",
            "message": "Vehicle Dashboard Backend",
            "vehicleId": request.app[ENGINE_KEY].vehicle_id,
            "endpoints": _ENDPOINTS,
        }
    )


async def _get_state(request: web.Request) -> web.Response:
    return _state_response(request.app[ENGINE_KEY])


async def _set_motor_speed(request: web.Request) -> web.Response:
    body = await _parse_body(request, MotorSpeedRequest)
    engine = request.app[ENGINE_KEY]
    engine.set_motor_speed(body.speed)
    return _state_response(engine)


async def _set_charging(request: web.Request) -> web.Response:
    body = await _parse_body(request, ChargingRequest)
    engine = request.app[ENGINE_KEY]
    engine.set_charging(body.is_charging)
    return _state_response(engine)


async def _set_engine(request: web.Request) -> web.Response:
    body = await _parse_body(request, EngineRequest)
    engine = request.app[ENGINE_KEY]
    engine.set_engine(body.is_on)
    return _state_response(engine)


async def _set_brake_hold(request: web.Request) -> web.Response:
    body = await _parse_body(request, BrakeHoldRequest)
    engine = request.app[ENGINE_KEY]
    engine.set_brake_hold(body.is_active)
    return _state_response(engine)


async def _temperature(request: web.Request) -> web.Response:
    # Detail toggling is a presentation concern; the body is only validated.
    await _parse_body(request, TemperatureRequest)
    return _state_response(request.app[ENGINE_KEY])


async def _state_stream(request: web.Request) -> web.WebSocketResponse:
    """Push every ``stateUpdate`` to the client until it disconnects."""
    engine = request.app[ENGINE_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    queue: asyncio.Queue[StateUpdate] = asyncio.Queue(maxsize=100)

    def _enqueue(update: StateUpdate) -> None:
        if queue.full():
            # Slow client: drop the oldest frame, the newest state matters most.
            queue.get_nowait()
        queue.put_nowait(update)

    unsubscribe = engine.notifier.subscribe(EngineEvent.STATE_UPDATE, _enqueue)
    _logger.debug("State stream opened remote=%s", request.remote)

    async def _forward() -> None:
        await ws.send_json({"action": "connect", "data": engine.get_state().to_payload()})
        while True:
            update = await queue.get()
            await ws.send_json(update.to_message())

    sender = asyncio.create_task(_forward())
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                _logger.debug("State stream error", exc_info=ws.exception())
                break
    finally:
        unsubscribe()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        _logger.debug("State stream closed remote=%s", request.remote)
    return ws


def create_app(engine: SimulationEngine, *, cors_enabled: bool = True) -> web.Application:
    """Build the aiohttp application serving *engine*.

    The engine is started when the application starts and closed on
    cleanup.
    """
    app = web.Application(middlewares=[_cors_middleware, _error_middleware])
    app[ENGINE_KEY] = engine
    app[CORS_KEY] = cors_enabled

    app.router.add_get("/", _index)
    app.router.add_get("/state", _get_state)
    app.router.add_get("/ws", _state_stream)
    app.router.add_post("/control/motorSpeed", _set_motor_speed)
    app.router.add_post("/control/charging", _set_charging)
    app.router.add_post("/control/engine", _set_engine)
    app.router.add_post("/control/brakeHold", _set_brake_hold)
    app.router.add_post("/control/temperature", _temperature)

    async def _engine_ctx(app: web.Application) -> AsyncIterator[None]:
        app[ENGINE_KEY].start()
        yield
        await app[ENGINE_KEY].aclose()

    app.cleanup_ctx.append(_engine_ctx)
    return app
