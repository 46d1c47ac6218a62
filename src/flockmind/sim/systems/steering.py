from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from pygame.math import Vector2

from ..core.agent import Agent, AgentRole
from ..core.config import ArenaConfig, SwarmConfig
from ..core.environment import EnvironmentFeature
from ..utils.math2d import _distance, _safe_normalize_xy

OBSTACLE_MARGIN = 50.0


def flock_neighbors(agent: Agent, others: Iterable[Agent], communication_range: float) -> List[Tuple[Agent, float]]:
    nearby: List[Tuple[Agent, float]] = []
    for other in others:
        if other.id == agent.id:
            continue
        distance = _distance(agent.position, other.position)
        if 0.0 < distance < communication_range:
            nearby.append((other, distance))
    return nearby


def cohesion(agent: Agent, nearby: Sequence[Tuple[Agent, float]], weight: float) -> Vector2:
    if not nearby:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other, _distance_to in nearby:
        sum_x += other.position.x
        sum_y += other.position.y
    inv = 1.0 / len(nearby)
    scale = weight / 100.0
    return Vector2((sum_x * inv - agent.position.x) * scale, (sum_y * inv - agent.position.y) * scale)


def separation_weight(distance: float, separation_distance: float) -> float:
    if separation_distance <= 0.0 or distance >= separation_distance:
        return 0.0
    return (separation_distance - max(0.0, distance)) / separation_distance


def separation(agent: Agent, nearby: Sequence[Tuple[Agent, float]], separation_distance: float) -> Vector2:
    accum_x = 0.0
    accum_y = 0.0
    for other, distance in nearby:
        push = separation_weight(distance, separation_distance)
        if push <= 0.0:
            continue
        accum_x -= (other.position.x - agent.position.x) * push
        accum_y -= (other.position.y - agent.position.y) * push
    return Vector2(accum_x, accum_y)


def alignment(agent: Agent, nearby: Sequence[Tuple[Agent, float]], weight: float = 100.0) -> Vector2:
    if not nearby:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other, _distance_to in nearby:
        sum_x += other.position.x - agent.position.x
        sum_y += other.position.y - agent.position.y
    inv = 1.0 / len(nearby)
    scale = weight / 100.0
    return Vector2(sum_x * inv * scale, sum_y * inv * scale)


def nearest_leader(nearby: Sequence[Tuple[Agent, float]]) -> Optional[Agent]:
    closest: Optional[Agent] = None
    closest_distance = math.inf
    for other, distance in nearby:
        if other.role != AgentRole.LEADER:
            continue
        if distance < closest_distance:
            closest = other
            closest_distance = distance
    return closest


def leader_influence(agent: Agent, nearby: Sequence[Tuple[Agent, float]], weight: float) -> Vector2:
    if agent.role != AgentRole.FOLLOWER:
        return Vector2()
    leader = nearest_leader(nearby)
    if leader is None:
        return Vector2()
    scale = weight / 100.0
    return Vector2((leader.position.x - agent.position.x) * scale, (leader.position.y - agent.position.y) * scale)


def boundary_force(position: Vector2, arena: ArenaConfig, weight: float) -> Vector2:
    margin = arena.boundary_margin
    x = position.x
    y = position.y
    if x < margin:
        force_x = margin - x
    elif x > arena.width - margin:
        force_x = arena.width - margin - x
    else:
        force_x = 0.0
    if y < margin:
        force_y = margin - y
    elif y > arena.height - margin:
        force_y = arena.height - margin - y
    else:
        force_y = 0.0
    scale = weight / 100.0
    return Vector2(force_x * scale, force_y * scale)


def obstacle_force(position: Vector2, features: Iterable[EnvironmentFeature], weight: float) -> Vector2:
    total_x = 0.0
    total_y = 0.0
    for feature in features:
        if not feature.is_active:
            continue
        reach = feature.radius + OBSTACLE_MARGIN
        distance = _distance(position, feature.position)
        if distance >= reach:
            continue
        falloff = (reach - distance) / reach
        angle = math.atan2(position.y - feature.position.y, position.x - feature.position.x)
        strength = falloff * (weight / 100.0) * feature.effect_multiplier * (feature.strength / 100.0)
        total_x += math.cos(angle) * strength
        total_y += math.sin(angle) * strength
    return Vector2(total_x, total_y)


def compute_steering(
    agent: Agent,
    others: Iterable[Agent],
    features: Sequence[EnvironmentFeature],
    swarm: SwarmConfig,
    arena: ArenaConfig,
) -> Vector2:
    nearby = flock_neighbors(agent, others, swarm.communication_range)
    parts = (
        cohesion(agent, nearby, swarm.cohesion),
        separation(agent, nearby, swarm.separation),
        alignment(agent, nearby, swarm.alignment),
        leader_influence(agent, nearby, swarm.leader_influence),
        boundary_force(agent.position, arena, swarm.boundary_force),
        obstacle_force(agent.position, features, swarm.obstacle_avoidance),
    )
    total_x = 0.0
    total_y = 0.0
    for part in parts:
        total_x += part.x
        total_y += part.y
    return _safe_normalize_xy(total_x, total_y)
