"""Agent context handed to the decision oracle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple

from ..core.agent import (
    Agent,
    AgentRole,
    BoundaryDistance,
    Interaction,
    ObstacleReading,
    ResourceReading,
    SensorSnapshot,
)
from ..core.config import ArenaConfig
from ..utils.math2d import _distance

RECENT_MEMORY_LIMIT = 5


@dataclass(frozen=True, slots=True)
class NeighborSummary:
    id: int
    role: AgentRole
    x: float
    y: float
    distance: float


@dataclass(frozen=True, slots=True)
class AgentContext:
    id: int
    role: AgentRole
    position: Tuple[float, float]
    neighbors: Tuple[NeighborSummary, ...]
    memory: Tuple[Interaction, ...]
    sensors: SensorSnapshot

    @property
    def is_leader(self) -> bool:
        return self.role == AgentRole.LEADER

    def nearest_leader(self) -> NeighborSummary | None:
        for neighbor in self.neighbors:
            if neighbor.role == AgentRole.LEADER:
                return neighbor
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "position": {"x": self.position[0], "y": self.position[1]},
            "neighbors": [
                {"id": n.id, "role": n.role.value, "x": n.x, "y": n.y} for n in self.neighbors
            ],
            "memory": {
                "interactions": [
                    {"agentId": i.agent_id, "type": i.kind, "timestamp": i.timestamp} for i in self.memory
                ]
            },
            "sensors": {
                "localDensity": self.sensors.local_density,
                "nearbyObstacles": [
                    {"id": o.id, "type": o.kind, "distance": o.distance, "direction": o.direction}
                    for o in self.sensors.nearby_obstacles
                ],
                "boundaryDistance": dict(self.sensors.boundary_distance.items()),
            },
        }


def build_agent_context(agent: Agent, others: Iterable[Agent], communication_range: float) -> AgentContext:
    neighbors = []
    for other in others:
        if other.id == agent.id:
            continue
        distance = _distance(agent.position, other.position)
        if distance < communication_range:
            neighbors.append(NeighborSummary(other.id, other.role, other.position.x, other.position.y, distance))
    neighbors.sort(key=lambda n: (n.distance, n.id))
    return AgentContext(
        id=agent.id,
        role=agent.role,
        position=(agent.position.x, agent.position.y),
        neighbors=tuple(neighbors),
        memory=agent.memory.recent_interactions(RECENT_MEMORY_LIMIT),
        sensors=agent.sensors,
    )


def context_from_payload(agent_id: int, raw: Mapping[str, Any], arena: ArenaConfig) -> AgentContext:
    """Build a context from the JSON body accepted by the decision endpoint.

    Missing sections default to empty values and boundary distances missing
    from the payload are derived from the arena; malformed numbers or roles
    raise ValueError.
    """
    position_raw = raw.get("position") or {}
    x = float(position_raw.get("x", 0.0))
    y = float(position_raw.get("y", 0.0))
    neighbors = []
    for item in raw.get("neighbors") or []:
        nx = float(item.get("x", 0.0))
        ny = float(item.get("y", 0.0))
        distance = ((nx - x) ** 2 + (ny - y) ** 2) ** 0.5
        neighbors.append(
            NeighborSummary(int(item.get("id", 0)), AgentRole(item.get("role", "follower")), nx, ny, distance)
        )
    neighbors.sort(key=lambda n: (n.distance, n.id))
    interactions = tuple(
        Interaction(int(i.get("agentId", 0)), str(i.get("type", "")), float(i.get("timestamp", 0.0)))
        for i in (raw.get("memory") or {}).get("interactions") or []
    )
    memory = tuple(sorted(interactions, key=lambda i: i.timestamp, reverse=True)[:RECENT_MEMORY_LIMIT])
    sensors_raw = raw.get("sensors") or {}
    boundary_raw = sensors_raw.get("boundaryDistance") or {}
    sensors = SensorSnapshot(
        local_density=float(sensors_raw.get("localDensity", 0.0)),
        nearby_obstacles=tuple(
            ObstacleReading(
                int(o.get("id", 0)),
                str(o.get("type", "obstacle")),
                float(o.get("distance", 0.0)),
                float(o.get("direction", 0.0)),
            )
            for o in sensors_raw.get("nearbyObstacles") or []
        ),
        nearby_resources=tuple(
            ResourceReading(
                int(r.get("id", 0)),
                str(r.get("type", "")),
                int(r.get("value", 0)),
                float(r.get("distance", 0.0)),
                float(r.get("direction", 0.0)),
            )
            for r in sensors_raw.get("nearbyResources") or []
        ),
        boundary_distance=BoundaryDistance(
            top=float(boundary_raw.get("top", y)),
            right=float(boundary_raw.get("right", arena.width - x)),
            bottom=float(boundary_raw.get("bottom", arena.height - y)),
            left=float(boundary_raw.get("left", x)),
        ),
    )
    return AgentContext(
        id=agent_id,
        role=AgentRole(raw.get("role", "follower")),
        position=(x, y),
        neighbors=tuple(neighbors),
        memory=memory,
        sensors=sensors,
    )
