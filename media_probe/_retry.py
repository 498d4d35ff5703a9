# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Retry loop for probe attempt cycles.

An *attempt cycle* is one full pass through the range, head and get steps.
:func:`run_with_retry` repeats cycles while the raised
:class:`~media_probe.errors.ProbeError` is retryable, sleeping a linear,
capped delay between cycles.

Logger: ``media_probe.retry``; retries are logged at DEBUG level.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from media_probe.errors import ProbeError

_logger = logging.getLogger("media_probe.retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff shape.

    Attributes:
        max_attempts: Number of attempt cycles before giving up.
        backoff_step_ms: Delay added per completed attempt.
        backoff_max_ms: Upper bound on any single delay.

    Raises:
        ValueError: If any value is negative.

    """

    max_attempts: int = 3
    backoff_step_ms: int = 1000
    backoff_max_ms: int = 5000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.backoff_step_ms < 0:
            raise ValueError(f"backoff_step_ms must be >= 0, got {self.backoff_step_ms}")
        if self.backoff_max_ms < 0:
            raise ValueError(f"backoff_max_ms must be >= 0, got {self.backoff_max_ms}")


def compute_delay_ms(attempt: int, policy: RetryPolicy) -> int:
    """Return the delay after the 1-based *attempt*: ``min(step * attempt, max)``."""
    return min(policy.backoff_step_ms * attempt, policy.backoff_max_ms)


async def run_with_retry(
    attempt_cycle: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    url: str,
    _sleep: Sleep = asyncio.sleep,
) -> T:
    """Run *attempt_cycle* until it succeeds or a terminal error occurs.

    Args:
        attempt_cycle: Coroutine factory performing one attempt cycle.
        policy: Attempt budget and backoff.
        url: Probed URL (for log messages and the exhaustion error).
        _sleep: Async sleep function (injectable for tests).

    Returns:
        The value of the first successful cycle.

    Raises:
        ProbeError: Immediately for non-retryable errors; the last error once
            the budget is spent; ``RETRIES_EXHAUSTED`` if no cycle ran.

    """
    last_error: ProbeError | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await attempt_cycle()
        except ProbeError as exc:
            last_error = exc
            if not exc.is_retryable:
                raise
            if attempt >= policy.max_attempts:
                break
            delay_ms = compute_delay_ms(attempt, policy)
            _logger.debug(
                "%s on %s (attempt %d/%d), retrying in %dms",
                exc.kind.value,
                url,
                attempt,
                policy.max_attempts,
                delay_ms,
                extra={"url": url, "attempt": attempt, "delay_ms": delay_ms, "kind": exc.kind.value},
            )
            await _sleep(delay_ms / 1000)

    if last_error is not None:
        raise last_error
    raise ProbeError.retries_exhausted(policy.max_attempts, url=url)
