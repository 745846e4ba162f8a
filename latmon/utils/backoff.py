"""Backoff utilities for retry policies."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass
class ExponentialBackoff:
    """Simple exponential backoff with optional jitter."""

    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.1

    def next_delay(self, retries: int) -> float:
        """Calculate the next delay for given retry count (0-based)."""
        delay = self.base_delay * (self.multiplier ** max(0, retries))
        delay = min(delay, self.max_delay)
        if self.jitter > 0:
            jitter_amt = delay * self.jitter
            delay = max(0.0, delay - jitter_amt) + random.random() * (2 * jitter_amt)
        return delay


@dataclass
class RetryPolicy(ExponentialBackoff):
    """Backoff plus an optional cap on the number of retries.

    The defaults describe a fixed 500 ms delay that never gives up.
    """

    base_delay: float = 0.5
    multiplier: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.0
    max_attempts: int | None = None

    def should_retry(self, retries: int) -> bool:
        """Return True if another attempt is allowed after ``retries`` failures."""
        return self.max_attempts is None or retries < self.max_attempts

    @classmethod
    def from_config(cls, config: object) -> RetryPolicy:
        """Build a policy from a ``RetryConfig``-like object."""
        return cls(
            base_delay=getattr(config, "base_delay", cls.base_delay),
            multiplier=getattr(config, "multiplier", cls.multiplier),
            max_delay=getattr(config, "max_delay", cls.max_delay),
            jitter=getattr(config, "jitter", cls.jitter),
            max_attempts=getattr(config, "max_attempts", None),
        )
