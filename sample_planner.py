"""
sample_planner.py

Pick the capture instants for one task: `samples` draws over
[0, duration), sorted so output files run in time order.
"""
from __future__ import annotations

import random

RANDOM_BITS = 64
_DOMAIN = 1 << RANDOM_BITS


def _draw(rng: random.Random, duration: int, unbiased: bool) -> int:
    if not unbiased:
        # plain modulo; near-uniform unless duration divides 2**64
        return rng.getrandbits(RANDOM_BITS) % duration
    limit = _DOMAIN - (_DOMAIN % duration)
    while True:
        value = rng.getrandbits(RANDOM_BITS)
        if value < limit:
            return value % duration


def plan_samples(duration: int, samples: int, rng: random.Random,
                 unbiased: bool = False) -> list[int]:
    """
    Return `samples` timestamps (ns), each < `duration`, ascending.
    Coinciding draws are kept.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    if samples < 1:
        raise ValueError(f"need at least one sample, got {samples}")
    return sorted(_draw(rng, duration, unbiased) for _ in range(samples))
