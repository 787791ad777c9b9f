"""Token-bucket rate limiter for outgoing feed posts.

In-memory only; the bucket starts full and resets on restart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Burst allowance is a fixed share of the per-minute rate (six seconds worth).
BURST_DIVISOR = 10


@dataclass
class TokenBucket:
    """Single token bucket with time-proportional refill."""

    capacity: float
    refill_rate_per_second: float
    tokens: float
    last_refill: Optional[float] = None

    def refill(self, now: float) -> None:
        if self.last_refill is not None:
            elapsed = max(0.0, now - self.last_refill)
            self.tokens = min(self.tokens + elapsed * self.refill_rate_per_second, self.capacity)
        self.last_refill = now

    def try_consume(self, now: float) -> bool:
        """Refill, then take one token if available."""

        self.refill(now)
        if self.tokens < 1:
            return False
        self.tokens -= 1
        return True


class RateLimiter:
    """Publish gate allowing ``rate_per_minute`` posts with a short burst."""

    def __init__(self, rate_per_minute: float) -> None:
        if rate_per_minute <= 0:
            raise ValueError("rate_per_minute must be positive")
        capacity = rate_per_minute / BURST_DIVISOR
        self._bucket = TokenBucket(
            capacity=capacity,
            refill_rate_per_second=rate_per_minute / 60,
            tokens=capacity,
        )

    @property
    def bucket(self) -> TokenBucket:
        return self._bucket

    def try_consume(self, now: float) -> bool:
        return self._bucket.try_consume(now)
