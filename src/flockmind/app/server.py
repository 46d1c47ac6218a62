from __future__ import annotations

import asyncio
import json
import logging
import math
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.ai.context import context_from_payload
from ..sim.ai.oracle import DecisionOracle
from ..sim.core.config import AppConfig, ConfigError, swarm_config_from_dict, swarm_config_to_dict
from ..sim.core.world import World
from ..sim.systems.analytics import analyze

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig, oracle: Optional[DecisionOracle] = None):
        self.config = config
        self.world = World(config.simulation, oracle=oracle)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance(self) -> None:
        async with self._lock:
            await self.world.step(self.tick)
            self.tick += 1
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.simulation.tick_interval / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "features": snapshot.features,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Flockmind Swarm Simulation")
controller = SimulationController(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/agents")
async def list_agents() -> JSONResponse:
    return JSONResponse([agent.to_dict() for agent in controller.world.agents])


@app.get("/api/config")
async def get_config() -> JSONResponse:
    return JSONResponse(swarm_config_to_dict(controller.world.swarm))


@app.post("/api/config")
async def update_config(payload: dict) -> JSONResponse:
    try:
        swarm = swarm_config_from_dict(payload, base=controller.world.swarm)
    except ConfigError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    applied = controller.world.apply_swarm_config(swarm)
    logger.info("swarm config updated ai_enabled=%s population=%s", applied.ai_enabled, applied.population)
    return JSONResponse(swarm_config_to_dict(applied))


@app.get("/api/environment")
async def list_environment() -> JSONResponse:
    return JSONResponse([feature.to_dict() for feature in controller.world.features])


@app.post("/api/environment")
async def add_environment_feature(payload: dict) -> JSONResponse:
    try:
        feature = controller.world.store.add_feature(payload)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse(feature.to_dict())


@app.post("/api/agents/{agent_id}/decision")
async def request_decision(agent_id: int, payload: dict) -> JSONResponse:
    try:
        context = context_from_payload(agent_id, payload, controller.world.config.arena)
    except (ValueError, TypeError, AttributeError) as exc:
        return JSONResponse({"error": f"Invalid agent context: {exc}"}, status_code=400)
    decision = await controller.world.decisions.get_decision(agent_id, context)
    return JSONResponse(decision.to_dict())


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(snapshot.agents),
            "phase": controller.world.orchestrator.phase.value,
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.get("/api/analytics")
async def analytics() -> JSONResponse:
    world = controller.world
    return JSONResponse(asdict(analyze(world.agents, world.swarm, world.config.arena)))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    try:
        speed = float(payload.get("multiplier", 1.0))
    except (TypeError, ValueError, OverflowError) as exc:
        return JSONResponse({"error": f"Invalid speed multiplier: {exc}"}, status_code=400)
    if not math.isfinite(speed):
        return JSONResponse({"error": "Invalid speed multiplier: must be finite"}, status_code=400)
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
