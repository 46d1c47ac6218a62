from __future__ import annotations

from typing import List

from ..core.agent import AgentRole
from .context import AgentContext

SYSTEM_PROMPT = """You are an AI swarm agent making decisions based on local information and collective behavior rules.
Your responses should be concise and focused on immediate actions.
Consider the following behaviors:
- Cohesion: Stay close to neighboring agents
- Separation: Avoid collisions with others
- Alignment: Match velocity with nearby agents
- Leadership: Leaders guide followers, followers seek leaders
- Exploration: Search for optimal positions
- Memory: Learn from past interactions
- Adaptation: Adjust behavior based on local density
- Boundary awareness: Respect environmental boundaries
- Obstacle avoidance: Navigate around obstacles safely"""

_ACTION_MENU = """Choose your next action:
1. "move_towards": Move to a specific target with purpose
2. "hold": Maintain current position
3. "explore": Seek new areas
4. "avoid": Move away from obstacles or boundaries
5. "align": Match movement with neighbors
6. "lead": Guide other agents (if leader)
7. "follow": Track and mirror leader movement

Respond with a JSON object containing:
{
  "action": "move_towards|hold|explore|avoid|align|lead|follow",
  "reasoning": "brief explanation of decision",
  "target": {"x": number, "y": number},
  "priority": number
}
"target" is optional and used for move_towards; "priority" is the urgency of the action from 1 to 10.

Consider:
- Leaders should coordinate and guide followers
- Maintain optimal distance from neighbors
- Adapt to local density
- Learn from recent interactions
- Balance exploration and cohesion
- Avoid obstacles and boundaries
- Adjust behavior based on sensor data"""

CRITICAL_BOUNDARY_DISTANCE = 50.0


def density_label(density: float) -> str:
    if density < 0.2:
        return "sparse"
    if density < 0.5:
        return "low"
    if density < 0.8:
        return "moderate"
    return "high"


def build_prompt(context: AgentContext) -> str:
    x, y = context.position
    leader = context.nearest_leader()
    followers = sum(1 for n in context.neighbors if n.role == AgentRole.FOLLOWER)
    sensors = context.sensors
    lines: List[str] = [
        f"As a swarm agent (ID: {context.id}, Role: {context.role.value}), analyze your situation:",
        "",
        "Current State:",
        f"- Position: ({x:.0f}, {y:.0f})",
        f"- Nearby agents: {len(context.neighbors)}",
    ]
    if leader is not None:
        lines.append(f"- Nearest leader at: ({leader.x:.0f}, {leader.y:.0f})")
    lines.append(f"- Nearby followers: {followers}")
    lines.append(f"- Local density: {sensors.local_density:.2f} ({density_label(sensors.local_density)})")
    lines.append("")
    lines.append("Environmental Awareness:")
    if sensors.nearby_obstacles:
        nearest = min(sensors.nearby_obstacles, key=lambda o: o.distance)
        lines.append(f"- Nearest obstacle: {nearest.kind} at {nearest.distance:.0f} units")
    else:
        lines.append("- No nearby obstacles")
    critical = next(
        ((side, d) for side, d in sensors.boundary_distance.items() if d < CRITICAL_BOUNDARY_DISTANCE), None
    )
    if critical is not None:
        lines.append(f"- Approaching {critical[0]} boundary ({critical[1]:.0f} units)")
    else:
        lines.append("- Safe distance from boundaries")
    lines.append("")
    lines.append("Recent Memory:")
    for interaction in context.memory:
        lines.append(
            f"- {interaction.kind} interaction with Agent {interaction.agent_id} at {interaction.timestamp:.0f}"
        )
    lines.append("")
    lines.append(_ACTION_MENU)
    return "\n".join(lines)
