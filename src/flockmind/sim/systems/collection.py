from __future__ import annotations

from typing import Dict, Sequence

from ..core.agent import Agent, Interaction, ResourceLocation
from ..core.environment import EnvironmentFeature, FeatureKind
from ..core.store import WorldStore
from ..utils.math2d import _distance


def collect_resources(agents: Sequence[Agent], features: Sequence[EnvironmentFeature], store: WorldStore) -> int:
    resources = [f for f in features if f.kind == FeatureKind.RESOURCE and f.resource_type is not None]
    collected = 0
    for agent in sorted(agents, key=lambda a: a.id):
        for feature in resources:
            if feature.collected or _distance(agent.position, feature.position) > feature.radius:
                continue
            if store.collect_resource(feature.id, agent.id):
                agent.resources = agent.resources.add(feature.resource_type, feature.value)
                collected += 1
    return collected


def record_encounters(agents: Sequence[Agent], separation: float, retention: int, timestamp: float) -> int:
    if separation <= 0.0:
        return 0
    encounters = 0
    for index, agent in enumerate(agents):
        for other in agents[index + 1 :]:
            if _distance(agent.position, other.position) >= separation:
                continue
            agent.memory = agent.memory.remember_interaction(Interaction(other.id, "encounter", timestamp), retention)
            other.memory = other.memory.remember_interaction(Interaction(agent.id, "encounter", timestamp), retention)
            encounters += 1
    return encounters


def remember_sensed_resources(
    agent: Agent, features: Sequence[EnvironmentFeature], retention: int, timestamp: float
) -> None:
    if not agent.sensors.nearby_resources:
        return
    by_id: Dict[int, EnvironmentFeature] = {f.id: f for f in features}
    memory = agent.memory
    for reading in agent.sensors.nearby_resources:
        feature = by_id.get(reading.id)
        if feature is None or feature.collected:
            continue
        location = ResourceLocation(feature.position.x, feature.position.y, reading.resource_type, timestamp)
        memory = memory.remember_resource(location, retention)
    agent.memory = memory
