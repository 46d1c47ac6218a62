from __future__ import annotations

import math

from ..core.config import ArenaConfig
from ..core.rng import DeterministicRng
from ..types.decision import Decision, DecisionAction
from .context import AgentContext

BOUNDARY_ALERT_DISTANCE = 50.0
OBSTACLE_ALERT_DISTANCE = 50.0
CENTER_JITTER = 100.0
AVOID_STEP = 50.0


def rule_based_decision(
    context: AgentContext, arena: ArenaConfig, rng: DeterministicRng, timestamp: float = 0.0
) -> Decision:
    sensors = context.sensors
    if any(distance < BOUNDARY_ALERT_DISTANCE for _side, distance in sensors.boundary_distance.items()):
        center_x, center_y = arena.center
        return Decision(
            DecisionAction.AVOID,
            "Moving away from boundary",
            target=(
                center_x + rng.next_range(-CENTER_JITTER, CENTER_JITTER),
                center_y + rng.next_range(-CENTER_JITTER, CENTER_JITTER),
            ),
            priority=9,
            timestamp=timestamp,
        )

    if sensors.nearby_obstacles:
        nearest = min(sensors.nearby_obstacles, key=lambda o: o.distance)
        if nearest.distance < OBSTACLE_ALERT_DISTANCE:
            x, y = context.position
            away = nearest.direction + math.pi
            return Decision(
                DecisionAction.AVOID,
                "Avoiding obstacle",
                target=(x + math.cos(away) * AVOID_STEP, y + math.sin(away) * AVOID_STEP),
                priority=8,
                timestamp=timestamp,
            )

    if context.is_leader:
        return Decision(
            DecisionAction.EXPLORE,
            "Exploring new territory",
            target=(rng.next_range(0.0, arena.width), rng.next_range(0.0, arena.height)),
            priority=7,
            timestamp=timestamp,
        )

    leader = context.nearest_leader()
    if leader is not None:
        return Decision(
            DecisionAction.FOLLOW,
            "Following nearby leader",
            target=(leader.x, leader.y),
            priority=8,
            timestamp=timestamp,
        )

    return Decision(DecisionAction.ALIGN, "Aligning with neighbors", priority=5, timestamp=timestamp)
