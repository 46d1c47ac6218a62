from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class DecisionAction(str, Enum):
    MOVE_TOWARDS = "move_towards"
    HOLD = "hold"
    EXPLORE = "explore"
    AVOID = "avoid"
    ALIGN = "align"
    LEAD = "lead"
    FOLLOW = "follow"
    CONTINUE = "continue"


# Actions whose meaning implies a place to go; only these carry a target.
DESTINATION_ACTIONS = frozenset(
    {
        DecisionAction.MOVE_TOWARDS,
        DecisionAction.EXPLORE,
        DecisionAction.AVOID,
        DecisionAction.FOLLOW,
    }
)


@dataclass(frozen=True, slots=True)
class Decision:
    action: DecisionAction
    reasoning: str
    target: Optional[tuple[float, float]] = None
    priority: int = 5
    timestamp: float = 0.0
    reused: bool = False

    @property
    def has_target(self) -> bool:
        return self.target is not None and self.action in DESTINATION_ACTIONS

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "action": self.action.value,
            "reasoning": self.reasoning,
            "priority": self.priority,
            "timestamp": self.timestamp,
            "reused": self.reused,
        }
        if self.target is not None:
            payload["target"] = {"x": self.target[0], "y": self.target[1]}
        return payload


@dataclass(frozen=True, slots=True)
class DecisionCacheEntry:
    decision: Decision
    timestamp: float
