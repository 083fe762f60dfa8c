"""Tests for the invite join backoff policy."""

from __future__ import annotations

import pytest

from matrix_chatgpt.backoff import BackoffPolicy


@pytest.mark.parametrize("attempt", range(15))
def test_delay_doubles_from_two(attempt: int) -> None:
    """The delay after n doublings from 2 is 2^(n+1)."""
    assert BackoffPolicy().delay_for(attempt) == 2 ** (attempt + 1)


@pytest.mark.parametrize("attempt", range(15))
def test_gives_up_exactly_past_ceiling(attempt: int) -> None:
    """Retrying stops exactly when the computed delay exceeds 3600."""
    policy = BackoffPolicy()
    delay = policy.delay_for(attempt)
    assert policy.exhausted(delay) == (delay > 3600)


def test_last_delay_before_ceiling() -> None:
    """2048 is the last delay waited; the next one (4096) is past the ceiling."""
    policy = BackoffPolicy()
    assert not policy.exhausted(2048)
    assert policy.next_delay(2048) == 4096
    assert policy.exhausted(4096)
    assert not policy.exhausted(3600)


def test_next_delay_matches_delay_for() -> None:
    """Doubling a delay gives the delay of the following attempt."""
    policy = BackoffPolicy()
    for attempt in range(10):
        assert policy.next_delay(policy.delay_for(attempt)) == policy.delay_for(attempt + 1)


def test_negative_attempt_rejected() -> None:
    """Attempts are counted from zero."""
    with pytest.raises(ValueError, match="attempt must be >= 0"):
        BackoffPolicy().delay_for(-1)


def test_custom_policy() -> None:
    """Initial delay, factor and ceiling are configurable."""
    policy = BackoffPolicy(initial_delay=1, factor=3, max_delay=10)
    assert [policy.delay_for(n) for n in range(3)] == [1, 3, 9]
    assert policy.exhausted(27)
