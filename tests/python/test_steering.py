from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from flockmind.sim.core.agent import Agent, AgentRole
from flockmind.sim.core.config import ArenaConfig, SwarmConfig
from flockmind.sim.core.environment import EnvironmentFeature, FeatureEffect, FeatureKind
from flockmind.sim.systems import steering


def _agent(agent_id: int, x: float, y: float, role: AgentRole = AgentRole.FOLLOWER) -> Agent:
    return Agent(id=agent_id, position=Vector2(x, y), role=role)


def test_isolated_agent_has_zero_steering():
    agent = _agent(1, 400.0, 300.0)
    force = steering.compute_steering(agent, [agent], [], SwarmConfig(), ArenaConfig())
    assert force == Vector2(0.0, 0.0)


def test_steering_is_normalized_and_deterministic():
    agents = [
        _agent(1, 400.0, 300.0, AgentRole.LEADER),
        _agent(2, 430.0, 320.0),
        _agent(3, 380.0, 260.0),
        _agent(4, 410.0, 295.0),
    ]
    obstacle = EnvironmentFeature(1, FeatureKind.OBSTACLE, Vector2(440.0, 300.0), 15.0, FeatureEffect.REPEL, 80.0)
    swarm = SwarmConfig()
    arena = ArenaConfig()

    first = [steering.compute_steering(a, agents, [obstacle], swarm, arena) for a in agents]
    second = [steering.compute_steering(a, agents, [obstacle], swarm, arena) for a in agents]

    assert first == second
    for force in first:
        assert -1.0 <= force.x <= 1.0
        assert -1.0 <= force.y <= 1.0
        assert force.length() == approx(1.0) or force.length() == 0.0


def test_leader_influence_only_for_followers_with_leaders():
    leader = _agent(1, 400.0, 300.0, AgentRole.LEADER)
    other_leader = _agent(2, 440.0, 300.0, AgentRole.LEADER)
    follower = _agent(3, 420.0, 300.0)
    lone_follower = _agent(4, 100.0, 100.0)
    peer = _agent(5, 120.0, 100.0)

    nearby = steering.flock_neighbors(leader, [leader, other_leader, follower], 100.0)
    assert steering.leader_influence(leader, nearby, 70.0) == Vector2(0.0, 0.0)

    nearby = steering.flock_neighbors(lone_follower, [lone_follower, peer], 100.0)
    assert steering.leader_influence(lone_follower, nearby, 70.0) == Vector2(0.0, 0.0)

    nearby = steering.flock_neighbors(follower, [leader, other_leader, follower], 100.0)
    pull = steering.leader_influence(follower, nearby, 50.0)
    assert pull.x == approx(-10.0)
    assert pull.y == approx(0.0)


def test_nearest_leader_requires_strictly_smaller_distance():
    first = _agent(1, 0.0, 0.0, AgentRole.LEADER)
    second = _agent(2, 0.0, 0.0, AgentRole.LEADER)
    assert steering.nearest_leader([(first, 20.0), (second, 20.0)]) is first
    assert steering.nearest_leader([(first, 20.0), (second, 10.0)]) is second


def test_separation_pushes_away_from_close_neighbor():
    agent = _agent(1, 400.0, 300.0)
    close = _agent(2, 410.0, 300.0)
    nearby = steering.flock_neighbors(agent, [agent, close], 100.0)
    push = steering.separation(agent, nearby, 30.0)
    assert push.x < 0.0
    assert push.y == approx(0.0)

    far = _agent(3, 450.0, 300.0)
    nearby = steering.flock_neighbors(agent, [agent, far], 100.0)
    assert steering.separation(agent, nearby, 30.0) == Vector2(0.0, 0.0)


def test_separation_weight_is_maximal_and_bounded_at_zero_distance():
    assert steering.separation_weight(0.0, 30.0) == 1.0
    assert steering.separation_weight(10.0, 30.0) == approx(2.0 / 3.0)
    assert steering.separation_weight(30.0, 30.0) == 0.0
    assert steering.separation_weight(5.0, 0.0) == 0.0


def test_identical_positions_do_not_divide_by_zero():
    first = _agent(1, 400.0, 300.0)
    second = _agent(2, 400.0, 300.0)
    agents = [first, second]
    assert steering.flock_neighbors(first, agents, 100.0) == []
    force = steering.compute_steering(first, agents, [], SwarmConfig(), ArenaConfig())
    assert math.isfinite(force.x) and math.isfinite(force.y)
    assert force == Vector2(0.0, 0.0)


def test_boundary_force_zero_inside_margin_box():
    arena = ArenaConfig()
    for x, y in [(51.0, 51.0), (400.0, 300.0), (749.0, 549.0)]:
        assert steering.boundary_force(Vector2(x, y), arena, 100.0) == Vector2(0.0, 0.0)


def test_boundary_force_scales_with_penetration():
    arena = ArenaConfig()
    near_left_top = steering.boundary_force(Vector2(20.0, 40.0), arena, 50.0)
    assert near_left_top.x == approx(15.0)
    assert near_left_top.y == approx(5.0)
    near_right_bottom = steering.boundary_force(Vector2(790.0, 580.0), arena, 100.0)
    assert near_right_bottom.x == approx(-40.0)
    assert near_right_bottom.y == approx(-30.0)


def test_obstacle_effects_push_or_pull():
    position = Vector2(400.0, 300.0)
    repel = EnvironmentFeature(1, FeatureKind.OBSTACLE, Vector2(420.0, 300.0), 10.0, FeatureEffect.REPEL, 100.0)
    attract = EnvironmentFeature(2, FeatureKind.ZONE, Vector2(420.0, 300.0), 10.0, FeatureEffect.ATTRACT, 100.0)

    pushed = steering.obstacle_force(position, [repel], 100.0)
    assert pushed.x == approx(-(40.0 / 60.0) * 1.5)
    assert pushed.y == approx(0.0, abs=1e-9)

    pulled = steering.obstacle_force(position, [attract], 100.0)
    assert pulled.x == approx((40.0 / 60.0) * 0.5)

    far = EnvironmentFeature(3, FeatureKind.OBSTACLE, Vector2(600.0, 300.0), 10.0, FeatureEffect.REPEL, 100.0)
    assert steering.obstacle_force(position, [far], 100.0) == Vector2(0.0, 0.0)


def test_cohesion_and_alignment_use_neighbor_centroid():
    agent = _agent(1, 100.0, 100.0)
    others = [agent, _agent(2, 120.0, 100.0), _agent(3, 100.0, 140.0)]
    nearby = steering.flock_neighbors(agent, others, 100.0)

    pull = steering.cohesion(agent, nearby, 50.0)
    assert pull.x == approx(5.0)
    assert pull.y == approx(10.0)

    align = steering.alignment(agent, nearby)
    assert align.x == approx(10.0)
    assert align.y == approx(20.0)
