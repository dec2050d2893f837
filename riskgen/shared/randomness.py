"""Seedable source for every random decision a run makes.

Profile synthesis, identity sampling, bad-actor IP injection and per-transaction
risk levels all draw from one ``RandomSource`` so a seeded run is reproducible
and tests can substitute scripted decisions.
"""

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class RandomSource:
    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""
        if probability <= 0.0:
            return False
        if probability >= 1.0:
            return True
        return self._rng.random() < probability

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise IndexError("cannot choose from an empty sequence")
        return options[self._rng.randrange(len(options))]

    def sample_with_replacement(self, options: Sequence[T], k: int) -> list[T]:
        return [self.choice(options) for _ in range(k)]

    def hex_token(self, num_bytes: int = 12) -> str:
        """Random lowercase hex string of ``2 * num_bytes`` characters."""
        return f"{self._rng.getrandbits(num_bytes * 8):0{num_bytes * 2}x}"
