from __future__ import annotations

import math

from pygame.math import Vector2


def _distance_xy(ax: float, ay: float, bx: float, by: float) -> float:
    dx = ax - bx
    dy = ay - by
    return math.sqrt(dx * dx + dy * dy)


def _distance(a: Vector2, b: Vector2) -> float:
    return _distance_xy(a.x, a.y, b.x, b.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude = math.sqrt(x * x + y * y)
    if magnitude <= 0.0:
        return Vector2()
    return Vector2(x / magnitude, y / magnitude)


def _bearing(origin: Vector2, target: Vector2) -> float:
    return math.atan2(target.y - origin.y, target.x - origin.x)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _clamp_to_arena(position: Vector2, width: float, height: float) -> Vector2:
    return Vector2(_clamp_value(position.x, 0.0, width), _clamp_value(position.y, 0.0, height))
