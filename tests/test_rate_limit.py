from __future__ import annotations

import random

import pytest

from core.rate_limit import RateLimiter


def test_burst_at_one_instant_is_capped_by_capacity() -> None:
    limiter = RateLimiter(60)
    results = [limiter.try_consume(100.0) for _ in range(10)]

    assert results == [True] * 6 + [False] * 4


def test_refill_is_proportional_to_elapsed_time() -> None:
    limiter = RateLimiter(60)
    for _ in range(6):
        assert limiter.try_consume(0.0)
    assert not limiter.try_consume(0.5)

    # Half a token left over from the last call plus half a second of refill.
    assert limiter.try_consume(1.0)
    assert not limiter.try_consume(1.0)


def test_failed_consume_does_not_decrement() -> None:
    limiter = RateLimiter(60)
    for _ in range(6):
        limiter.try_consume(0.0)
    assert limiter.bucket.tokens == pytest.approx(0.0)
    assert not limiter.try_consume(0.2)
    assert limiter.bucket.tokens == pytest.approx(0.2)


def test_tokens_stay_within_bounds_for_arbitrary_gaps() -> None:
    limiter = RateLimiter(120)
    capacity = limiter.bucket.capacity
    assert capacity == pytest.approx(12)

    rng = random.Random(1234)
    now = 0.0
    for _ in range(2000):
        now += rng.choice([0.0, 0.01, 0.3, 2.0, 45.0, 3600.0])
        limiter.try_consume(now)
        assert 0.0 <= limiter.bucket.tokens <= capacity


def test_clock_going_backwards_never_overfills() -> None:
    limiter = RateLimiter(60)
    limiter.try_consume(100.0)
    limiter.try_consume(50.0)
    assert 0.0 <= limiter.bucket.tokens <= limiter.bucket.capacity


def test_rejects_non_positive_rate() -> None:
    with pytest.raises(ValueError):
        RateLimiter(0)
