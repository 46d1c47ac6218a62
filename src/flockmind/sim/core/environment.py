from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pygame.math import Vector2

from .agent import ResourceType


class FeatureKind(str, Enum):
    OBSTACLE = "obstacle"
    ZONE = "zone"
    BOUNDARY = "boundary"
    RESOURCE = "resource"


class FeatureEffect(str, Enum):
    REPEL = "repel"
    ATTRACT = "attract"
    SLOW = "slow"
    SPEED = "speed"
    COLLECTIBLE = "collectible"


EFFECT_MULTIPLIERS: Dict[FeatureEffect, float] = {
    FeatureEffect.REPEL: 1.5,
    FeatureEffect.ATTRACT: -0.5,
    FeatureEffect.SLOW: 0.3,
    FeatureEffect.SPEED: 2.0,
}


@dataclass(slots=True)
class EnvironmentFeature:
    id: int
    kind: FeatureKind
    position: Vector2
    radius: float
    effect: FeatureEffect
    strength: float = 50.0
    resource_type: Optional[ResourceType] = None
    value: int = 0
    collected: bool = False
    collector_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return not (self.kind == FeatureKind.RESOURCE and self.collected)

    @property
    def effect_multiplier(self) -> float:
        return EFFECT_MULTIPLIERS.get(self.effect, 1.0)

    def contains(self, point: Vector2) -> bool:
        return self.position.distance_to(point) < self.radius

    def collect(self, agent_id: int) -> bool:
        if self.kind != FeatureKind.RESOURCE or self.collected:
            return False
        self.collected = True
        self.collector_id = agent_id
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "x": self.position.x,
            "y": self.position.y,
            "radius": self.radius,
            "effect": self.effect.value,
            "strength": self.strength,
            "resourceType": self.resource_type.value if self.resource_type else None,
            "value": self.value,
            "collected": self.collected,
            "collectorId": self.collector_id,
        }


def feature_from_dict(raw: Mapping[str, Any], feature_id: int) -> EnvironmentFeature:
    try:
        kind = FeatureKind(raw["type"])
        effect = FeatureEffect(raw["effect"])
        x = float(raw["x"])
        y = float(raw["y"])
        radius = float(raw["radius"])
        strength = float(raw.get("strength", 50))
        value = max(0, int(raw.get("value") or 0))
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid environment feature: {exc}") from exc
    if not all(math.isfinite(number) for number in (x, y, radius, strength)):
        raise ValueError("Invalid environment feature: numeric fields must be finite")
    if radius < 0:
        raise ValueError("Invalid environment feature: radius must be non-negative")
    position = Vector2(x, y)
    resource_raw = raw.get("resourceType", raw.get("resource_type"))
    try:
        resource_type = ResourceType(resource_raw) if resource_raw is not None else None
    except ValueError as exc:
        raise ValueError(f"Invalid environment feature: {exc}") from exc
    if kind == FeatureKind.RESOURCE and resource_type is None:
        raise ValueError("Invalid environment feature: resources need a resourceType")
    return EnvironmentFeature(
        id=feature_id,
        kind=kind,
        position=position,
        radius=radius,
        effect=effect,
        strength=strength,
        resource_type=resource_type,
        value=value,
    )
