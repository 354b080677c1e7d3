"""Exponential backoff with symmetric jitter for retry scheduling."""

import random
from collections.abc import Callable
from datetime import timedelta

from core.schemas.delivery import RetryPolicy


def base_delay_seconds(attempt_number: int, policy: RetryPolicy) -> float:
    """Return the un-jittered delay for an attempt, clamped to max_delay.

    Attempt numbers are 1-indexed; anything below 1 is treated as 1.
    """
    attempt = max(attempt_number, 1)
    try:
        delay = policy.initial_delay_seconds * policy.backoff_multiplier ** (
            attempt - 1
        )
    except OverflowError:
        return policy.max_delay_seconds
    return min(delay, policy.max_delay_seconds)


def next_delay(
    attempt_number: int,
    policy: RetryPolicy,
    uniform: Callable[[float, float], float] = random.uniform,
) -> timedelta:
    """Compute the delay before the given retry attempt.

    ``delay = base + base * jitter_fraction * U(-1, 1)``, floored at zero,
    where ``base = min(initial_delay * multiplier ** (attempt - 1), max_delay)``.
    Jitter spreads out retries of messages that failed together, e.g. during
    a provider outage.

    Args:
        attempt_number: 1-indexed retry attempt.
        policy: Retry policy supplying delays, multiplier and jitter.
        uniform: Random source, injectable for tests.

    Returns:
        Delay as a timedelta.
    """
    base = base_delay_seconds(attempt_number, policy)
    jitter = base * policy.jitter_fraction * uniform(-1.0, 1.0)
    return timedelta(seconds=max(0.0, base + jitter))
