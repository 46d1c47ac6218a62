from __future__ import annotations

import pytest
from pygame.math import Vector2

from flockmind.sim.core.agent import AgentMemory, AgentRole, Interaction, ResourceCounters, ResourceLocation, ResourceType
from flockmind.sim.core.config import SwarmConfig
from flockmind.sim.core.environment import FeatureEffect, FeatureKind, feature_from_dict
from flockmind.sim.core.rng import DeterministicRng
from flockmind.sim.core.store import InMemoryWorldStore, seed_world


def test_feature_from_dict_parses_resource():
    feature = feature_from_dict(
        {"type": "resource", "x": 10, "y": 20, "radius": 8, "effect": "collectible", "resourceType": "material",
         "value": 15},
        3,
    )
    assert feature.id == 3
    assert feature.kind == FeatureKind.RESOURCE
    assert feature.position == Vector2(10.0, 20.0)
    assert feature.resource_type == ResourceType.MATERIAL
    assert feature.value == 15
    assert feature.is_active is True


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "portal", "x": 0, "y": 0, "radius": 5, "effect": "repel"},
        {"type": "obstacle", "x": "a", "y": 0, "radius": 5, "effect": "repel"},
        {"type": "obstacle", "x": 0, "y": 0, "radius": -1, "effect": "repel"},
        {"type": "obstacle", "x": 0, "y": 0, "radius": 5},
        {"type": "resource", "x": 0, "y": 0, "radius": 5, "effect": "collectible"},
        {"type": "obstacle", "x": 0, "y": 0, "radius": 5, "effect": "repel", "strength": "strong"},
    ],
)
def test_feature_from_dict_rejects_invalid_input(raw):
    with pytest.raises(ValueError):
        feature_from_dict(raw, 1)


def test_effect_multipliers():
    def make(effect: str):
        return feature_from_dict({"type": "zone", "x": 0, "y": 0, "radius": 5, "effect": effect}, 1)

    assert make("repel").effect_multiplier == 1.5
    assert make("attract").effect_multiplier == -0.5
    assert make("slow").effect_multiplier == 0.3
    assert make("speed").effect_multiplier == 2.0
    assert make("collectible").effect_multiplier == 1.0


def test_resource_collects_only_once():
    feature = feature_from_dict(
        {"type": "resource", "x": 0, "y": 0, "radius": 5, "effect": "collectible", "resourceType": "energy"}, 1
    )
    assert feature.collect(4) is True
    assert feature.collect(5) is False
    assert feature.collector_id == 4
    assert feature.is_active is False


def test_store_assigns_feature_ids_and_sanitizes_config():
    store = InMemoryWorldStore(config=SwarmConfig(speed=50.0))
    assert store.read_config().speed == 5.0
    first = store.add_feature({"type": "obstacle", "x": 1, "y": 1, "radius": 5, "effect": FeatureEffect.REPEL.value})
    second = store.add_feature({"type": "zone", "x": 2, "y": 2, "radius": 5, "effect": "slow"})
    assert (first.id, second.id) == (1, 2)
    assert store.collect_resource(first.id, 1) is False
    assert store.collect_resource(99, 1) is False
    store.replace_config(SwarmConfig(cohesion=400.0))
    assert store.read_config().cohesion == 100.0


def test_seed_world_places_leader_first_and_resource_clusters():
    store = InMemoryWorldStore(config=SwarmConfig(population=12))
    seed_world(store, DeterministicRng(8), 800.0, 600.0)
    agents = store.read_agents()
    assert len(agents) == 12
    assert [a.id for a in agents] == list(range(1, 13))
    assert agents[0].role == AgentRole.LEADER
    assert all(a.role == AgentRole.FOLLOWER for a in agents[1:])
    resources = store.read_features()
    assert 9 <= len(resources) <= 15
    assert {f.resource_type for f in resources} == set(ResourceType)
    assert all(10 <= f.value <= 50 for f in resources)

    seed_world(store, DeterministicRng(8), 800.0, 600.0)
    assert len(store.read_features()) == len(resources)


def test_memory_keeps_only_newest_entries():
    memory = AgentMemory()
    for stamp in range(6):
        memory = memory.remember_interaction(Interaction(stamp, "encounter", float(stamp)), retention=3)
    assert [i.agent_id for i in memory.interactions] == [3, 4, 5]
    assert [i.agent_id for i in memory.recent_interactions(2)] == [5, 4]


def test_memory_deduplicates_resource_locations():
    memory = AgentMemory()
    memory = memory.remember_resource(ResourceLocation(1.0, 2.0, "energy", 10.0), retention=5)
    memory = memory.remember_resource(ResourceLocation(3.0, 4.0, "data", 11.0), retention=5)
    memory = memory.remember_resource(ResourceLocation(1.0, 2.0, "energy", 12.0), retention=5)
    assert [(loc.x, loc.last_seen) for loc in memory.resource_locations] == [(3.0, 11.0), (1.0, 12.0)]


def test_resource_counters_add_by_type():
    counters = ResourceCounters().add(ResourceType.DATA, 7).add(ResourceType.ENERGY, 3).add(ResourceType.DATA, -4)
    assert (counters.energy, counters.material, counters.data) == (3, 0, 7)
    assert counters.total == 10


@pytest.mark.parametrize(
    "field, bad",
    [
        ("x", float("inf")),
        ("y", float("-inf")),
        ("radius", float("nan")),
        ("radius", float("inf")),
        ("strength", float("inf")),
        ("strength", float("nan")),
        ("x", int("9" * 400)),
        ("value", float("inf")),
    ],
)
def test_feature_from_dict_rejects_non_finite_numbers(field, bad):
    raw = {"type": "obstacle", "x": 380, "y": 300, "radius": 20, "effect": "repel", "strength": 50}
    raw[field] = bad
    with pytest.raises(ValueError):
        feature_from_dict(raw, 1)
