from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from flockmind.app import server
from flockmind.sim.ai.oracle import OfflineDecisionOracle
from flockmind.sim.core.config import AppConfig, SimulationConfig


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    controller = server.SimulationController(
        AppConfig(simulation=SimulationConfig(seed=5)), oracle=OfflineDecisionOracle()
    )
    monkeypatch.setattr(server, "controller", controller)
    return TestClient(server.app)


def test_agents_listing_starts_with_leader(client):
    response = client.get("/api/agents")
    assert response.status_code == 200
    agents = response.json()
    assert len(agents) == 20
    assert agents[0]["role"] == "leader"
    assert {"id", "x", "y", "role", "resources", "sensors", "memory"} <= set(agents[0])


def test_config_update_clamps_and_rejects_garbage(client):
    response = client.post("/api/config", json={"speed": 99, "aiEnabled": True})
    assert response.status_code == 200
    assert response.json()["speed"] == 5.0
    assert response.json()["ai_enabled"] is True
    assert client.get("/api/config").json()["speed"] == 5.0

    bad = client.post("/api/config", json={"speed": "warp"})
    assert bad.status_code == 400
    assert "speed" in bad.json()["error"]
    assert client.get("/api/config").json()["speed"] == 5.0


def test_environment_features_can_be_added(client):
    before = len(client.get("/api/environment").json())
    response = client.post(
        "/api/environment", json={"type": "obstacle", "x": 100, "y": 120, "radius": 15, "effect": "repel"}
    )
    assert response.status_code == 200
    feature = response.json()
    assert feature["type"] == "obstacle"
    assert feature["x"] == 100.0
    assert len(client.get("/api/environment").json()) == before + 1

    bad = client.post("/api/environment", json={"type": "obstacle", "x": 1})
    assert bad.status_code == 400


def test_decision_endpoint_uses_shared_cache(client):
    payload = {"role": "leader", "position": {"x": 400, "y": 300}}
    first = client.post("/api/agents/1/decision", json=payload)
    assert first.status_code == 200
    assert first.json()["action"] == "lead"
    assert first.json()["reused"] is False

    second = client.post("/api/agents/1/decision", json=payload)
    assert second.json()["reused"] is True

    bad = client.post("/api/agents/2/decision", json={"role": "admiral"})
    assert bad.status_code == 400


def test_status_and_analytics(client):
    status = client.get("/api/status").json()
    assert status["running"] is False
    assert status["tick"] == 0
    assert status["population"] == 20
    assert status["phase"] == "Idle"
    assert status["metrics"]["population"] == 20

    report = client.get("/api/analytics").json()
    assert set(report) == {"total_resources", "coverage", "efficiency", "suggestions"}


def test_control_routes(client):
    assert client.post("/api/control/start").json() == {"running": True}
    assert server.controller.running is True
    assert client.post("/api/control/stop").json() == {"running": False}
    assert client.post("/api/control/speed", json={"multiplier": 50}).json() == {"multiplier": 5.0}
    assert client.post("/api/control/speed", json={"multiplier": 0}).json() == {"multiplier": 0.1}
    reset = client.post("/api/control/reset").json()
    assert reset == {"running": False, "tick": 0}


def test_speed_rejects_unusable_multipliers(client):
    assert client.post("/api/control/speed", json={"multiplier": "fast"}).status_code == 400
    assert client.post("/api/control/speed", json={"multiplier": None}).status_code == 400
    assert client.post("/api/control/speed", json={"multiplier": int("9" * 400)}).status_code == 400
    assert server.controller.speed_multiplier == 1.0


def test_environment_rejects_non_finite_numbers_without_storing(client):
    before = client.get("/api/environment").json()
    response = client.post(
        "/api/environment",
        content='{"type": "obstacle", "x": 380, "y": 300, "radius": 20, "effect": "repel", "strength": Infinity}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert client.get("/api/environment").json() == before


def test_decision_endpoint_continues_when_oracle_raises(client, monkeypatch):
    class BrokenOracle:
        async def request_decision(self, context):
            raise RuntimeError("socket closed")

    monkeypatch.setattr(server.controller.world.decisions, "_oracle", BrokenOracle())
    response = client.post("/api/agents/3/decision", json={"role": "follower", "position": {"x": 400, "y": 300}})
    assert response.status_code == 200
    assert response.json()["action"] == "continue"
    assert response.json()["reused"] is False
