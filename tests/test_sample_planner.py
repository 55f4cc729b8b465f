import random

import pytest

from sample_planner import plan_samples


@pytest.mark.parametrize("duration,samples", [(1, 1), (7, 50), (10_000_000_000, 3), (3_000_000_001, 25)])
def test_plan_has_requested_count_in_range_and_sorted(duration, samples):
    plan = plan_samples(duration, samples, random.Random(42))

    assert len(plan) == samples
    assert all(0 <= t < duration for t in plan)
    assert plan == sorted(plan)


def test_same_seed_gives_same_plan():
    a = plan_samples(10_000_000_000, 8, random.Random(7))
    b = plan_samples(10_000_000_000, 8, random.Random(7))
    assert a == b


def test_duplicates_are_kept():
    # a one-nanosecond stream can only ever yield 0
    assert plan_samples(1, 4, random.Random()) == [0, 0, 0, 0]


def test_unbiased_mode_stays_in_range():
    duration = (1 << 63) + 1        # worst case for modulo bias
    plan = plan_samples(duration, 20, random.Random(3), unbiased=True)
    assert len(plan) == 20
    assert all(0 <= t < duration for t in plan)
    assert plan == sorted(plan)


def test_modulo_draw_reduces_full_width_value():
    rng = random.Random(11)
    ref = random.Random(11)
    expected = sorted(ref.getrandbits(64) % 1000 for _ in range(5))
    assert plan_samples(1000, 5, rng) == expected


@pytest.mark.parametrize("duration,samples", [(0, 1), (-5, 1), (100, 0)])
def test_invalid_arguments(duration, samples):
    with pytest.raises(ValueError):
        plan_samples(duration, samples, random.Random())
