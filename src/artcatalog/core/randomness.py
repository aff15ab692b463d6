"""Random-source abstraction used by every stochastic operation.

Scoring jitter and rarity draws take a :class:`RandomSource` argument instead
of calling the :mod:`random` module directly, so tests can inject a seeded
generator or a fixed sequence.  A :class:`random.Random` instance satisfies
the protocol as-is.
"""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields floats uniformly distributed in [0, 1)."""

    def random(self) -> float: ...


def default_random_source(seed: int | None = None) -> RandomSource:
    """Return a fresh generator, seeded when ``seed`` is given."""
    return random.Random(seed)


def uniform(rng: RandomSource, low: float, high: float) -> float:
    """Draw from ``[low, high)`` using only ``rng.random()``."""
    return low + (high - low) * rng.random()
