from __future__ import annotations
import random
from typing import Iterable, List, Optional
from typing_extensions import Protocol

class RandomSource(Protocol):
    def random(self) -> float: ...

class SequenceRandom:
    """Replays a fixed list of draws in [0, 1); cycles when exhausted."""

    def __init__(self, values: Iterable[float]):
        self.values: List[float] = list(values)
        if not self.values:
            raise ValueError("SequenceRandom needs at least one value")
        for v in self.values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"draws must be within [0, 1), got {v}")
        self.calls = 0

    def random(self) -> float:
        v = self.values[self.calls % len(self.values)]
        self.calls += 1
        return v

def make_rng(seed_mode: str = "fixed", seed: Optional[int] = None) -> random.Random:
    if seed_mode == "fixed":
        return random.Random(seed if seed is not None else 12345)
    return random.Random()
