from __future__ import annotations

import random
from typing import Optional


class DeterministicRng:
    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def chance(self, probability: float) -> bool:
        return self._random.random() < probability
