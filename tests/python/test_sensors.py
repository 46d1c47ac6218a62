from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from flockmind.sim.core.agent import Agent, AgentRole, ResourceType
from flockmind.sim.core.config import ArenaConfig, SwarmConfig
from flockmind.sim.core.environment import EnvironmentFeature, FeatureEffect, FeatureKind
from flockmind.sim.systems.sensors import boundary_distance, build_sensors, local_density


def _agent(agent_id: int, x: float, y: float, role: AgentRole = AgentRole.FOLLOWER) -> Agent:
    return Agent(id=agent_id, position=Vector2(x, y), role=role)


def test_lonely_agent_has_zero_density_and_no_obstacles():
    agent = _agent(1, 100.0, 200.0)
    sensors = build_sensors(agent, [agent], [], SwarmConfig(), ArenaConfig())

    assert sensors.local_density == 0.0
    assert sensors.nearby_obstacles == ()
    assert sensors.nearby_resources == ()
    assert sensors.boundary_distance.top == approx(200.0)
    assert sensors.boundary_distance.right == approx(700.0)
    assert sensors.boundary_distance.bottom == approx(400.0)
    assert sensors.boundary_distance.left == approx(100.0)


def test_density_weights_by_distance_and_zone():
    agent = _agent(1, 100.0, 100.0)
    other = _agent(2, 150.0, 100.0)
    assert local_density(agent, [agent, other], [], 100.0) == approx(0.5 / 100.0)

    attract = EnvironmentFeature(1, FeatureKind.ZONE, Vector2(150.0, 100.0), 20.0, FeatureEffect.ATTRACT)
    repel = EnvironmentFeature(2, FeatureKind.ZONE, Vector2(150.0, 100.0), 20.0, FeatureEffect.REPEL)
    assert local_density(agent, [agent, other], [attract], 100.0) == approx(0.75 / 100.0)
    assert local_density(agent, [agent, other], [repel], 100.0) == approx(0.25 / 100.0)


def test_neighbors_outside_sensor_range_are_ignored():
    agent = _agent(1, 100.0, 100.0)
    far = _agent(2, 300.0, 100.0)
    assert local_density(agent, [agent, far], [], 100.0) == 0.0


def test_obstacle_readings_carry_distance_and_bearing():
    agent = _agent(1, 100.0, 100.0)
    obstacle = EnvironmentFeature(7, FeatureKind.OBSTACLE, Vector2(100.0, 160.0), 10.0, FeatureEffect.REPEL)
    far = EnvironmentFeature(8, FeatureKind.OBSTACLE, Vector2(500.0, 500.0), 10.0, FeatureEffect.REPEL)
    sensors = build_sensors(agent, [agent], [obstacle, far], SwarmConfig(sensor_range=100.0), ArenaConfig())

    assert len(sensors.nearby_obstacles) == 1
    reading = sensors.nearby_obstacles[0]
    assert reading.id == 7
    assert reading.kind == "obstacle"
    assert reading.distance == approx(60.0)
    assert reading.direction == approx(math.pi / 2)


def test_collected_resources_are_invisible():
    agent = _agent(1, 100.0, 100.0)
    fresh = EnvironmentFeature(
        1, FeatureKind.RESOURCE, Vector2(120.0, 100.0), 10.0, FeatureEffect.COLLECTIBLE,
        resource_type=ResourceType.ENERGY, value=25,
    )
    spent = EnvironmentFeature(
        2, FeatureKind.RESOURCE, Vector2(80.0, 100.0), 10.0, FeatureEffect.COLLECTIBLE,
        resource_type=ResourceType.DATA, value=10, collected=True,
    )
    sensors = build_sensors(agent, [agent], [fresh, spent], SwarmConfig(), ArenaConfig())

    assert [o.id for o in sensors.nearby_obstacles] == [1]
    assert [r.id for r in sensors.nearby_resources] == [1]
    assert sensors.nearby_resources[0].resource_type == "energy"
    assert sensors.nearby_resources[0].value == 25


def test_boundary_distance_uses_arena_size():
    agent = _agent(1, 10.0, 590.0)
    distances = boundary_distance(agent, ArenaConfig(width=800.0, height=600.0))
    assert dict(distances.items()) == {"top": 590.0, "right": 790.0, "bottom": 10.0, "left": 10.0}
