"""Swarm-level performance analytics and tuning suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Set, Tuple

from ..core.agent import Agent
from ..core.config import ArenaConfig, SwarmConfig
from ..types.decision import DecisionAction
from ..utils.math2d import _distance

COVERAGE_CELL_SIZE = 20.0


@dataclass(slots=True)
class SwarmAnalytics:
    total_resources: int
    coverage: float
    efficiency: float
    suggestions: List[str] = field(default_factory=list)


def coverage(agents: Sequence[Agent], arena: ArenaConfig, cell_size: float = COVERAGE_CELL_SIZE) -> float:
    if cell_size <= 0.0 or arena.width <= 0.0 or arena.height <= 0.0:
        return 0.0
    cells: Set[Tuple[int, int]] = set()
    for agent in agents:
        cells.add((int(agent.position.x // cell_size), int(agent.position.y // cell_size)))
    total_cells = (arena.width / cell_size) * (arena.height / cell_size)
    return len(cells) / total_cells


def efficiency(agents: Sequence[Agent], swarm: SwarmConfig, arena: ArenaConfig) -> float:
    if not agents:
        return 0.0
    total_resources = sum(agent.resources.total for agent in agents)
    total_distance = 0.0
    pairs = 0
    for index, agent in enumerate(agents):
        for other in agents[index + 1 :]:
            total_distance += _distance(agent.position, other.position)
            pairs += 1
    average_distance = total_distance / (pairs or 1)
    distance_score = max(0.0, 1.0 - average_distance / arena.width)
    if swarm.ai_enabled:
        steered = sum(
            1
            for agent in agents
            if agent.last_decision is not None and agent.last_decision.action != DecisionAction.CONTINUE
        )
        ai_score = steered / len(agents)
    else:
        ai_score = 0.5
    return total_resources * 0.4 + distance_score * 0.3 + ai_score * 0.3


def suggestions(swarm: SwarmConfig, efficiency_score: float, coverage_score: float) -> List[str]:
    tips: List[str] = []
    if efficiency_score < 0.3:
        if swarm.cohesion > 70:
            tips.append("Reduce cohesion for better resource collection")
        if swarm.separation < 30:
            tips.append("Increase separation to avoid overcrowding")
        if not swarm.ai_enabled:
            tips.append("Enable AI control for smarter behavior")
    if coverage_score < 0.4:
        if swarm.speed < 2:
            tips.append("Increase speed for better area coverage")
        if swarm.exploration_weight < 50:
            tips.append("Increase exploration weight for better coverage")
    if swarm.ai_enabled and efficiency_score < 0.5:
        if swarm.decision_interval > 2000:
            tips.append("Decrease decision interval for faster reactions")
        if swarm.communication_range < 80:
            tips.append("Increase communication range for better coordination")
    return tips


def analyze(agents: Sequence[Agent], swarm: SwarmConfig, arena: ArenaConfig) -> SwarmAnalytics:
    coverage_score = coverage(agents, arena)
    efficiency_score = efficiency(agents, swarm, arena)
    return SwarmAnalytics(
        total_resources=sum(agent.resources.total for agent in agents),
        coverage=coverage_score,
        efficiency=efficiency_score,
        suggestions=suggestions(swarm, efficiency_score, coverage_score),
    )
