"""
hexbloop/seeds.py
Deterministic random sources

CRITICAL: Do NOT use Python's built-in hash() - it's salted per-process.
Do NOT use the module-level `random` functions anywhere in hexbloop: every
component receives its own SeededRandom instance so concurrent files never
share generator state.
"""

import hashlib
import time
from typing import List, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2147483647  # 2^31 - 1
# The one state the recurrence maps to itself (the modulus is prime)
LCG_FIXED_POINT = 1739276086


def stable_u32(*parts) -> int:
    """
    Generate a stable 32-bit unsigned integer from arbitrary parts.

    Uses SHA-256 truncated to 4 bytes for cross-platform determinism.

    Example:
        stable_u32("artwork", "GLITTERWAVE4821") -> consistent value across runs
    """
    s = "|".join(str(p) for p in parts).encode("utf-8")
    return int.from_bytes(hashlib.sha256(s).digest()[:4], "big")


class SeededRandom:
    """
    Linear congruential generator.

    state = (state * 1664525 + 1013904223) mod (2^31 - 1)
    random() returns state / (2^31 - 1)

    Identical seeds give identical sequences on every platform. With no seed
    the generator starts from the current time in nanoseconds, which is the
    non-reproducible default used outside tests.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = time.time_ns()
        self.seed = int(seed) % LCG_MODULUS
        self._state = self.seed
        if self._state == LCG_FIXED_POINT:
            self._state += 1

    def random(self) -> float:
        """Next value in [0, 1)."""
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high] inclusive."""
        return low + int(self.random() * (high - low + 1))

    def chance(self, probability: float) -> bool:
        return self.random() < probability

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("choice from empty sequence")
        return items[int(self.random() * len(items))]

    def shuffled(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates shuffle into a new list."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            out[i], out[j] = out[j], out[i]
        return out

    def weighted_choice(self, weights: Sequence[float]) -> int:
        """
        Index picked by one uniform draw against cumulative weights.

        Zero or negative weights are never picked unless all weights are zero,
        in which case index 0 is returned.
        """
        total = sum(w for w in weights if w > 0)
        if total <= 0:
            return 0
        draw = self.random() * total
        cumulative = 0.0
        last_positive = 0
        for i, w in enumerate(weights):
            if w <= 0:
                continue
            cumulative += w
            last_positive = i
            if draw < cumulative:
                return i
        return last_positive

    def numpy_generator(self) -> np.random.Generator:
        """
        Child numpy generator for bulk per-pixel noise.

        Seeded from this instance's next value, so it stays reproducible and
        never touches numpy's global state.
        """
        return np.random.default_rng(int(self.random() * LCG_MODULUS))
