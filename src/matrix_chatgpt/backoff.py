"""Exponential backoff with a hard ceiling on the delay."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import INVITE_RETRY_FACTOR, INVITE_RETRY_INITIAL_DELAY, INVITE_RETRY_MAX_DELAY


@dataclass(frozen=True)
class BackoffPolicy:
    """Maps retry attempts to wait durations and decides when to stop.

    The number of attempts is unbounded; retrying stops once the delay
    would exceed ``max_delay``.
    """

    initial_delay: int = INVITE_RETRY_INITIAL_DELAY
    factor: int = INVITE_RETRY_FACTOR
    max_delay: int = INVITE_RETRY_MAX_DELAY

    def delay_for(self, attempt: int) -> int:
        """Delay to wait after failed attempt number *attempt* (0-based)."""
        if attempt < 0:
            msg = f"attempt must be >= 0, got {attempt}"
            raise ValueError(msg)
        return self.initial_delay * self.factor**attempt

    def next_delay(self, delay: int) -> int:
        """Delay that follows *delay*."""
        return delay * self.factor

    def exhausted(self, delay: int) -> bool:
        """Whether *delay* is past the ceiling and retrying should stop."""
        return delay > self.max_delay

