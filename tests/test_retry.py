"""Tests for the attempt-cycle retry loop in _retry.py.

Tests use a recording ``_sleep`` so no time is spent waiting.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from media_probe._retry import RetryPolicy, compute_delay_ms, run_with_retry
from media_probe.errors import ErrorKind, ProbeError

from .conftest import SleepRecorder

URL = "https://example.com/a.mp4"


class _FlakyCycle:
    """Attempt cycle that raises scripted errors before returning ``"ok"``."""

    def __init__(self, *errors: ProbeError) -> None:
        self._errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return "ok"


def _run(cycle: _FlakyCycle, policy: RetryPolicy, sleep: SleepRecorder) -> str:
    return asyncio.run(run_with_retry(cycle, policy=policy, url=URL, _sleep=sleep))


# ---------------------------------------------------------------------------
# RetryPolicy / compute_delay_ms
# ---------------------------------------------------------------------------


class TestRetryPolicy:
    """Tests for RetryPolicy validation and defaults."""

    def test_defaults(self) -> None:
        """Three attempts, one-second steps capped at five seconds."""
        policy = RetryPolicy()
        assert (policy.max_attempts, policy.backoff_step_ms, policy.backoff_max_ms) == (3, 1000, 5000)

    @pytest.mark.parametrize("field", ["max_attempts", "backoff_step_ms", "backoff_max_ms"])
    def test_negative_rejected(self, field: str) -> None:
        """Negative values raise ValueError."""
        with pytest.raises(ValueError, match=field):
            RetryPolicy(**{field: -1})  # type: ignore[arg-type]


class TestComputeDelay:
    """Tests for the linear, capped backoff."""

    @pytest.mark.parametrize(
        ("attempt", "expected"), [(1, 1000), (2, 2000), (4, 4000), (5, 5000), (6, 5000), (50, 5000)]
    )
    def test_default_policy(self, attempt: int, expected: int) -> None:
        """``min(1000 * attempt, 5000)``."""
        assert compute_delay_ms(attempt, RetryPolicy()) == expected

    def test_zero_step(self) -> None:
        """A zero step disables waiting."""
        assert compute_delay_ms(3, RetryPolicy(backoff_step_ms=0)) == 0


# ---------------------------------------------------------------------------
# run_with_retry
# ---------------------------------------------------------------------------


class TestRunWithRetry:
    """Tests for run_with_retry."""

    def test_success_first_try(self, sleep_recorder: SleepRecorder) -> None:
        """A successful cycle returns without sleeping."""
        cycle = _FlakyCycle()
        assert _run(cycle, RetryPolicy(), sleep_recorder) == "ok"
        assert cycle.calls == 1
        assert sleep_recorder.delays == []

    def test_retryable_then_success(self, sleep_recorder: SleepRecorder) -> None:
        """Retryable errors are retried with growing delays."""
        cycle = _FlakyCycle(ProbeError.from_status(503, URL), ProbeError.timeout(100, url=URL))
        assert _run(cycle, RetryPolicy(), sleep_recorder) == "ok"
        assert cycle.calls == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    def test_terminal_error_not_retried(self, sleep_recorder: SleepRecorder) -> None:
        """A non-retryable error propagates after one call."""
        cycle = _FlakyCycle(ProbeError.from_status(404, URL))
        with pytest.raises(ProbeError) as exc_info:
            _run(cycle, RetryPolicy(max_attempts=5), sleep_recorder)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert cycle.calls == 1
        assert sleep_recorder.delays == []

    def test_last_error_raised(self, sleep_recorder: SleepRecorder) -> None:
        """When the budget runs out the last error is raised, with no trailing sleep."""
        last = ProbeError.network("third", url=URL)
        cycle = _FlakyCycle(ProbeError.network("first"), ProbeError.network("second"), last)
        with pytest.raises(ProbeError) as exc_info:
            _run(cycle, RetryPolicy(max_attempts=3), sleep_recorder)
        assert exc_info.value is last
        assert sleep_recorder.delays == [1.0, 2.0]

    def test_zero_attempts(self, sleep_recorder: SleepRecorder) -> None:
        """No budget means RETRIES_EXHAUSTED without calling the cycle."""
        cycle = _FlakyCycle()
        with pytest.raises(ProbeError) as exc_info:
            _run(cycle, RetryPolicy(max_attempts=0), sleep_recorder)
        assert exc_info.value.kind is ErrorKind.RETRIES_EXHAUSTED
        assert exc_info.value.url == URL
        assert cycle.calls == 0

    def test_retry_logged(self, sleep_recorder: SleepRecorder, caplog: pytest.LogCaptureFixture) -> None:
        """Each retry is logged at DEBUG with structured context."""
        cycle = _FlakyCycle(ProbeError.from_status(500, URL))
        with caplog.at_level(logging.DEBUG, logger="media_probe.retry"):
            _run(cycle, RetryPolicy(), sleep_recorder)

        records = [r for r in caplog.records if r.name == "media_probe.retry"]
        assert len(records) == 1
        assert records[0].levelno == logging.DEBUG
        assert records[0].__dict__["attempt"] == 1
        assert records[0].__dict__["delay_ms"] == 1000
        assert records[0].__dict__["kind"] == "server_error"
