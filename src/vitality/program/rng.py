"""
Seeded pseudo-random sequence for reproducible plan variations.

A plain linear-congruential generator: the same variation index always
produces the same sequence, on any platform.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

MULTIPLIER = 9301
INCREMENT = 49297
MODULUS = 233280
SEED_PRIME = 7919


class SeededRandom:
    """LCG keyed off a variation index."""

    def __init__(self, variation_index: int = 0):
        self.seed = (variation_index * SEED_PRIME) % MODULUS

    def next(self) -> float:
        """Advance the sequence and return a float in [0, 1)."""
        self.seed = (self.seed * MULTIPLIER + INCREMENT) % MODULUS
        return self.seed / MODULUS

    def randint(self, upper: int) -> int:
        """Integer in [0, upper)."""
        return int(self.next() * upper)

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates shuffle into a new list; the input is untouched."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = self.randint(i + 1)
            result[i], result[j] = result[j], result[i]
        return result
