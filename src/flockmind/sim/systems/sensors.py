from __future__ import annotations

from typing import Iterable, List, Sequence

from ..core.agent import Agent, BoundaryDistance, ObstacleReading, ResourceReading, SensorSnapshot
from ..core.config import ArenaConfig, SwarmConfig
from ..core.environment import EnvironmentFeature, FeatureEffect, FeatureKind
from ..utils.math2d import _bearing, _distance


def _zone_multiplier(neighbor: Agent, zones: Sequence[EnvironmentFeature]) -> float:
    for zone in zones:
        if zone.contains(neighbor.position):
            if zone.effect == FeatureEffect.ATTRACT:
                return 1.5
            if zone.effect == FeatureEffect.REPEL:
                return 0.5
            return 1.0
    return 1.0


def local_density(
    agent: Agent, others: Iterable[Agent], features: Sequence[EnvironmentFeature], sensor_range: float
) -> float:
    if sensor_range <= 0.0:
        return 0.0
    zones = [feature for feature in features if feature.kind == FeatureKind.ZONE]
    density = 0.0
    for other in others:
        if other.id == agent.id:
            continue
        distance = _distance(agent.position, other.position)
        if distance < sensor_range:
            density += (1.0 - distance / sensor_range) * _zone_multiplier(other, zones)
    return density / sensor_range


def boundary_distance(agent: Agent, arena: ArenaConfig) -> BoundaryDistance:
    x = agent.position.x
    y = agent.position.y
    return BoundaryDistance(top=y, right=arena.width - x, bottom=arena.height - y, left=x)


def build_sensors(
    agent: Agent,
    others: Iterable[Agent],
    features: Sequence[EnvironmentFeature],
    swarm: SwarmConfig,
    arena: ArenaConfig,
) -> SensorSnapshot:
    sensor_range = swarm.sensor_range
    active = [feature for feature in features if feature.is_active]
    obstacles: List[ObstacleReading] = []
    resources: List[ResourceReading] = []
    for feature in active:
        distance = _distance(agent.position, feature.position)
        if distance >= sensor_range:
            continue
        direction = _bearing(agent.position, feature.position)
        obstacles.append(ObstacleReading(feature.id, feature.kind.value, distance, direction))
        if feature.kind == FeatureKind.RESOURCE and feature.resource_type is not None:
            resources.append(
                ResourceReading(feature.id, feature.resource_type.value, feature.value, distance, direction)
            )
    return SensorSnapshot(
        local_density=local_density(agent, others, active, sensor_range),
        nearby_obstacles=tuple(obstacles),
        nearby_resources=tuple(resources),
        boundary_distance=boundary_distance(agent, arena),
    )
