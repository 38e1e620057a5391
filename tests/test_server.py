from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from pyvehsim.engine import SimulationEngine
from pyvehsim.server import create_app
from pyvehsim.state.events import EngineEvent
from pyvehsim.state.store import InMemoryStateStore

# Ticks are driven by hand; the background loop never fires during a test.
_SLOW_TICK_MS = 60_000


@pytest.fixture
def engine() -> SimulationEngine:
    return SimulationEngine("vehicle-1", store=InMemoryStateStore(), tick_interval_ms=_SLOW_TICK_MS)


@pytest_asyncio.fixture
async def client(engine: SimulationEngine) -> AsyncIterator[TestClient]:
    async with TestClient(TestServer(create_app(engine))) as test_client:
        yield test_client


@pytest.mark.asyncio
async def test_index_lists_endpoints(client: TestClient) -> None:
    resp = await client.get("/")
    assert resp.status == 200
    body = await resp.json()
    assert body["status"] == "ok"
    assert body["vehicleId"] == "vehicle-1"
    assert "/control/motorSpeed" in body["endpoints"]


@pytest.mark.asyncio
async def test_state_returns_rounded_snapshot(client: TestClient) -> None:
    resp = await client.get("/state")
    assert resp.status == 200
    body = await resp.json()
    assert body["batteryPercentage"] == 100
    assert body["gearRatio"] == "N/N"
    assert body["engineOn"] is False


@pytest.mark.asyncio
async def test_app_starts_and_stops_engine(engine: SimulationEngine) -> None:
    async with TestClient(TestServer(create_app(engine))):
        assert engine.is_running
    assert not engine.is_running


@pytest.mark.asyncio
async def test_control_flow(client: TestClient, engine: SimulationEngine) -> None:
    resp = await client.post("/control/engine", json={"isOn": True})
    assert (await resp.json())["engineOn"] is True

    resp = await client.post("/control/motorSpeed", json={"speed": 99})
    assert (await resp.json())["motorSpeed"] == 4

    engine.tick()
    body = await (await client.get("/state")).json()
    assert body["rpm"] == 800
    assert body["power"] == 1000
    assert body["gearRatio"] == "2.5/5.0"
    assert body["motorWarning"] is True

    resp = await client.post("/control/brakeHold", json={"isActive": True})
    body = await resp.json()
    assert body["brakeHold"] is True
    assert body["motorSpeed"] == 0

    resp = await client.post("/control/charging", json={"isCharging": True})
    assert (await resp.json())["isCharging"] is True

    resp = await client.post("/control/engine", json={"isOn": False})
    body = await resp.json()
    assert body["isCharging"] is False
    assert body["engineOn"] is False


@pytest.mark.asyncio
async def test_motor_speed_ignored_with_engine_off(client: TestClient) -> None:
    resp = await client.post("/control/motorSpeed", json={"speed": 3})
    assert resp.status == 200
    assert (await resp.json())["motorSpeed"] == 0


@pytest.mark.asyncio
async def test_temperature_is_read_only(client: TestClient) -> None:
    before = await (await client.get("/state")).json()
    resp = await client.post("/control/temperature", json={"showDetails": True})
    assert resp.status == 200
    assert await resp.json() == before


@pytest.mark.asyncio
async def test_invalid_json_is_rejected(client: TestClient) -> None:
    resp = await client.post("/control/engine", data="{not json", headers={"Content-Type": "application/json"})
    assert resp.status == 400
    body = await resp.json()
    assert body["status"] == "error"
    assert "Invalid JSON" in body["message"]


@pytest.mark.asyncio
async def test_undecodable_body_is_rejected(client: TestClient, engine: SimulationEngine) -> None:
    resp = await client.post(
        "/control/engine",
        data=b'{"isOn": "\xff\xfe"}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status == 400
    body = await resp.json()
    assert body["status"] == "error"
    assert "UTF-8" in body["message"]
    assert engine.get_state().engine_on is False


@pytest.mark.asyncio
async def test_invalid_body_is_rejected(client: TestClient, engine: SimulationEngine) -> None:
    resp = await client.post("/control/engine", json={"isOn": "maybe"})
    assert resp.status == 400
    body = await resp.json()
    assert body["status"] == "error"
    assert "isOn" in body["message"]
    assert engine.get_state().engine_on is False

    resp = await client.post("/control/motorSpeed", json={"speed": "fast"})
    assert resp.status == 400


@pytest.mark.asyncio
async def test_cors_headers(client: TestClient) -> None:
    resp = await client.get("/state")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"

    resp = await client.options("/control/engine")
    assert resp.status == 200
    assert resp.headers["Access-Control-Allow-Methods"] == "*"

    resp = await client.post("/control/engine", json={})
    assert resp.status == 400
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_cors_can_be_disabled(engine: SimulationEngine) -> None:
    async with TestClient(TestServer(create_app(engine, cors_enabled=False))) as test_client:
        resp = await test_client.get("/state")
        assert "Access-Control-Allow-Origin" not in resp.headers


@pytest.mark.asyncio
async def test_websocket_streams_state_updates(client: TestClient, engine: SimulationEngine) -> None:
    ws = await client.ws_connect("/ws")
    try:
        hello = await ws.receive_json(timeout=2)
        assert hello["action"] == "connect"
        assert hello["data"]["engineOn"] is False

        engine.set_engine(True)
        engine.set_motor_speed(2)
        assert engine.tick() is True

        message = await ws.receive_json(timeout=2)
        assert message["action"] == "stateUpdate"
        assert message["data"]["rpm"] == 400
        assert message["data"]["gearRatio"] == "1.5/3.0"
    finally:
        await ws.close()


@pytest.mark.asyncio
async def test_websocket_unsubscribes_on_close(client: TestClient, engine: SimulationEngine) -> None:
    ws = await client.ws_connect("/ws")
    await ws.receive_json(timeout=2)
    assert engine.notifier.subscriber_count(EngineEvent.STATE_UPDATE) == 1

    await ws.close()
    # The server handler unsubscribes once it has processed the close frame.
    for _ in range(50):
        if engine.notifier.subscriber_count(EngineEvent.STATE_UPDATE) == 0:
            break
        await client.get("/state")
    assert engine.notifier.subscriber_count(EngineEvent.STATE_UPDATE) == 0
