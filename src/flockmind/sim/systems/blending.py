from __future__ import annotations

from typing import Optional

from pygame.math import Vector2

from ..types.decision import Decision
from ..utils.math2d import _safe_normalize_xy


def blend_displacement(position: Vector2, force: Vector2, decision: Optional[Decision], speed: float) -> Vector2:
    dx = force.x * speed
    dy = force.y * speed
    if decision is None or not decision.has_target:
        return Vector2(dx, dy)
    target_x, target_y = decision.target
    steer = _safe_normalize_xy(target_x - position.x, target_y - position.y)
    return Vector2((dx + steer.x * speed) / 2.0, (dy + steer.y * speed) / 2.0)
