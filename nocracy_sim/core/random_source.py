"""Seeded pseudo-random source shared by every subsystem of one engine.

The generator is a 31-bit linear congruential generator. Each helper consumes
exactly one draw so that call order alone determines the sequence; two engines
built with the same seed and driven through the same ticks stay identical.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

_MODULUS_MASK = 0x7FFFFFFF
_MULTIPLIER = 1103515245
_INCREMENT = 12345
_BELOW_ONE = math.nextafter(1.0, 0.0)


class DeterministicRandom:
    """Constructor-injected PRNG; never shared between engine instances."""

    def __init__(self, seed: int) -> None:
        self._initial_seed = int(seed) & _MODULUS_MASK
        self._state = self._initial_seed
        self._draws = 0

    @property
    def seed(self) -> int:
        return self._initial_seed

    @property
    def state(self) -> int:
        return self._state

    @property
    def draws(self) -> int:
        """Number of values produced since construction or the last reseed."""
        return self._draws

    def next(self) -> float:
        """Advance the seed and return a value in [0, 1)."""
        self._state = (self._state * _MULTIPLIER + _INCREMENT) & _MODULUS_MASK
        self._draws += 1
        value = self._state / _MODULUS_MASK
        # state == mask would give exactly 1.0
        if value >= 1.0:
            return _BELOW_ONE
        return value

    def chance(self, probability: float) -> bool:
        return self.next() < probability

    def randint_below(self, upper: int) -> int:
        """Uniform integer in ``[0, upper)``; ``upper`` must be positive."""
        if upper <= 0:
            raise ValueError("upper must be positive")
        return int(self.next() * upper)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[self.randint_below(len(items))]

    def symmetric(self, span: float, center: float = 0.5) -> float:
        """``(next() - center) * span``; the noise shape used throughout the model."""
        return (self.next() - center) * span

    def reseed(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self._initial_seed = int(seed) & _MODULUS_MASK
        self._state = self._initial_seed
        self._draws = 0


__all__ = ["DeterministicRandom"]
