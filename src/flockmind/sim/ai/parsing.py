from __future__ import annotations

import json
import math
from typing import Any, Mapping, Optional

from ..types.decision import DESTINATION_ACTIONS, Decision, DecisionAction
from .oracle import DecisionParseError, OracleResponse

DEFAULT_REASONING = "No reasoning provided"
DEFAULT_PRIORITY = 5


def _parse_action(raw: Any) -> DecisionAction:
    if isinstance(raw, str):
        try:
            return DecisionAction(raw.strip().lower())
        except ValueError:
            return DecisionAction.CONTINUE
    return DecisionAction.CONTINUE


def _parse_target(raw: Any) -> Optional[tuple[float, float]]:
    if not isinstance(raw, Mapping):
        return None
    try:
        x = float(raw["x"])
        y = float(raw["y"])
    except (KeyError, TypeError, ValueError, OverflowError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def _parse_priority(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return DEFAULT_PRIORITY
    try:
        number = float(raw)
    except OverflowError:
        return DEFAULT_PRIORITY
    if not math.isfinite(number) or number == 0:
        return DEFAULT_PRIORITY
    return int(max(1, min(10, round(number))))


def parse_decision(payload: OracleResponse, timestamp: float) -> Decision:
    """Turn a raw oracle response into a Decision, defaulting missing fields.

    A response that is not JSON at all raises DecisionParseError; anything
    JSON-shaped is accepted and field-level defaults fill the gaps.
    """
    if payload is None or payload == "":
        return Decision(DecisionAction.CONTINUE, "No decision received", timestamp=timestamp)
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise DecisionParseError(f"Failed to parse decision: {exc}") from exc
    if not isinstance(payload, Mapping):
        return Decision(DecisionAction.CONTINUE, DEFAULT_REASONING, timestamp=timestamp)

    action = _parse_action(payload.get("action"))
    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning:
        reasoning = DEFAULT_REASONING
    target = _parse_target(payload.get("target")) if action in DESTINATION_ACTIONS else None
    if action == DecisionAction.MOVE_TOWARDS and target is None:
        action = DecisionAction.CONTINUE
    return Decision(
        action=action,
        reasoning=reasoning,
        target=target,
        priority=_parse_priority(payload.get("priority")),
        timestamp=timestamp,
    )
