from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pygame.math import Vector2

from ..types.decision import Decision


class AgentRole(str, Enum):
    LEADER = "leader"
    FOLLOWER = "follower"


class ResourceType(str, Enum):
    ENERGY = "energy"
    MATERIAL = "material"
    DATA = "data"


@dataclass(frozen=True, slots=True)
class ResourceCounters:
    energy: int = 0
    material: int = 0
    data: int = 0

    def add(self, kind: ResourceType, amount: int) -> "ResourceCounters":
        amount = max(0, int(amount))
        return replace(self, **{kind.value: getattr(self, kind.value) + amount})

    @property
    def total(self) -> int:
        return self.energy + self.material + self.data


@dataclass(frozen=True, slots=True)
class ObstacleReading:
    id: int
    kind: str
    distance: float
    direction: float


@dataclass(frozen=True, slots=True)
class ResourceReading:
    id: int
    resource_type: str
    value: int
    distance: float
    direction: float


@dataclass(frozen=True, slots=True)
class BoundaryDistance:
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    def items(self) -> Tuple[Tuple[str, float], ...]:
        return (("top", self.top), ("right", self.right), ("bottom", self.bottom), ("left", self.left))


@dataclass(frozen=True, slots=True)
class SensorSnapshot:
    local_density: float = 0.0
    nearby_obstacles: Tuple[ObstacleReading, ...] = ()
    nearby_resources: Tuple[ResourceReading, ...] = ()
    boundary_distance: BoundaryDistance = field(default_factory=BoundaryDistance)


@dataclass(frozen=True, slots=True)
class Interaction:
    agent_id: int
    kind: str
    timestamp: float


@dataclass(frozen=True, slots=True)
class ResourceLocation:
    x: float
    y: float
    resource_type: str
    last_seen: float


@dataclass(frozen=True, slots=True)
class AgentMemory:
    interactions: Tuple[Interaction, ...] = ()
    resource_locations: Tuple[ResourceLocation, ...] = ()

    def remember_interaction(self, interaction: Interaction, retention: int) -> "AgentMemory":
        kept = (self.interactions + (interaction,))[-max(1, retention):]
        return replace(self, interactions=kept)

    def remember_resource(self, location: ResourceLocation, retention: int) -> "AgentMemory":
        others = tuple(
            loc for loc in self.resource_locations if (loc.x, loc.y) != (location.x, location.y)
        )
        kept = (others + (location,))[-max(1, retention):]
        return replace(self, resource_locations=kept)

    def recent_interactions(self, limit: int = 5) -> Tuple[Interaction, ...]:
        ordered = sorted(self.interactions, key=lambda item: item.timestamp, reverse=True)
        return tuple(ordered[:limit])


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    role: AgentRole
    status: str = "active"
    resources: ResourceCounters = field(default_factory=ResourceCounters)
    sensors: SensorSnapshot = field(default_factory=SensorSnapshot)
    memory: AgentMemory = field(default_factory=AgentMemory)
    last_decision: Optional[Decision] = None

    @property
    def is_leader(self) -> bool:
        return self.role == AgentRole.LEADER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "role": self.role.value,
            "status": self.status,
            "resources": {
                "energy": self.resources.energy,
                "material": self.resources.material,
                "data": self.resources.data,
            },
            "sensors": {
                "localDensity": self.sensors.local_density,
                "nearbyObstacles": [
                    {"id": o.id, "type": o.kind, "distance": o.distance, "direction": o.direction}
                    for o in self.sensors.nearby_obstacles
                ],
                "nearbyResources": [
                    {
                        "id": r.id,
                        "type": r.resource_type,
                        "value": r.value,
                        "distance": r.distance,
                        "direction": r.direction,
                    }
                    for r in self.sensors.nearby_resources
                ],
                "boundaryDistance": dict(self.sensors.boundary_distance.items()),
            },
            "memory": {
                "interactions": [
                    {"agentId": i.agent_id, "type": i.kind, "timestamp": i.timestamp}
                    for i in self.memory.interactions
                ],
                "resourceLocations": [
                    {"x": loc.x, "y": loc.y, "type": loc.resource_type, "lastSeen": loc.last_seen}
                    for loc in self.memory.resource_locations
                ],
            },
            "lastDecision": self.last_decision.to_dict() if self.last_decision else None,
        }
